"""Application services: tier limits and knowledge ingestion."""

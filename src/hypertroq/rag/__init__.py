"""Retrieval: chunking, embeddings, vector search and query expansion."""

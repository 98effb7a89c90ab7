"""Utility helpers for hypertroq."""

"""LLM access for hypertroq."""

from .client import ChatMessage, GeminiClient, GenerationSettings

__all__ = ["ChatMessage", "GeminiClient", "GenerationSettings"]

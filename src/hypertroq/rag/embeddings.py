"""Embedding generation and vector helpers."""

import asyncio
import math
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np
import structlog

from ..errors import ExternalServiceError, ValidationError

logger = structlog.get_logger(__name__)

EMBEDDING_DIMENSIONS = 768

FITNESS_KEYWORDS = [
    "training",
    "exercise",
    "workout",
    "muscle",
    "strength",
    "fitness",
    "hypertrophy",
    "lifting",
    "bodybuilding",
    "powerlifting",
]


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


@dataclass
class EmbeddingResult:
    embedding: list[float]
    text: str
    metadata: dict = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return "error" in self.metadata


@dataclass
class SimilarityResult:
    score: float
    text: str
    metadata: dict = field(default_factory=dict)


@dataclass
class EmbeddingStats:
    mean: list[float]
    std: list[float]
    min: list[float]
    max: list[float]
    dimensions: int
    count: int


def optimize_search_query(query: str) -> str:
    """Add fitness context to short queries that carry none."""
    lowered = query.lower()
    if not any(keyword in lowered for keyword in FITNESS_KEYWORDS) and len(query) < 50:
        return f"{query} fitness training exercise"
    return query


class EmbeddingService:
    """Generates embeddings one at a time or in concurrent batches."""

    def __init__(
        self,
        embedder: Embedder,
        dimensions: int = EMBEDDING_DIMENSIONS,
        batch_delay: float = 1.0,
        retry_delay: float = 0.2,
    ):
        self.embedder = embedder
        self.dimensions = dimensions
        self.batch_delay = batch_delay
        self.retry_delay = retry_delay

    async def generate_embedding(self, text: str, metadata: dict | None = None) -> EmbeddingResult:
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty for embedding generation")
        embedding = await self.embedder.embed(text)
        return EmbeddingResult(embedding=embedding, text=text, metadata=metadata or {})

    async def generate_query_embedding(self, query: str) -> list[float]:
        if not query or not query.strip():
            raise ValidationError("Query cannot be empty")
        result = await self.generate_embedding(optimize_search_query(query))
        return result.embedding

    async def generate_embeddings_batch(
        self,
        texts: list[str],
        metadata: list[dict] | None = None,
        batch_size: int = 10,
    ) -> list[EmbeddingResult]:
        """Embed texts in concurrent batches.

        A failed batch is retried item by item. Items that still fail get a
        zero vector with ``{"error": ...}`` metadata so results stay aligned
        with ``texts``.
        """
        results: list[EmbeddingResult] = []

        for start in range(0, len(texts), batch_size):
            batch = texts[start : start + batch_size]
            batch_metadata = metadata[start : start + batch_size] if metadata else [None] * len(batch)

            try:
                batch_results = await asyncio.gather(
                    *(self.generate_embedding(t, m) for t, m in zip(batch, batch_metadata))
                )
                results.extend(batch_results)
                if start + batch_size < len(texts) and self.batch_delay:
                    await asyncio.sleep(self.batch_delay)
            except (ExternalServiceError, ValidationError) as e:
                logger.warning("embedding_batch_failed", batch=start // batch_size + 1, error=str(e))
                for offset, (text, meta) in enumerate(zip(batch, batch_metadata)):
                    try:
                        results.append(await self.generate_embedding(text, meta))
                    except (ExternalServiceError, ValidationError) as item_error:
                        logger.error(
                            "embedding_item_failed", index=start + offset, error=str(item_error)
                        )
                        results.append(
                            EmbeddingResult(
                                embedding=[0.0] * self.dimensions,
                                text=text,
                                metadata={"error": "Failed to generate embedding"},
                            )
                        )
                    if self.retry_delay:
                        await asyncio.sleep(self.retry_delay)

        return results


def cosine_similarity(a: list[float], b: list[float]) -> float:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError("Vectors must have the same dimension")
    norm_a, norm_b = np.linalg.norm(a), np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_similarities(query_embedding: list[float], matrix) -> np.ndarray:
    """Cosine of the query against every row of ``matrix``.

    Rows (or a query) with zero norm score 0.
    """
    query = np.asarray(query_embedding, dtype=float)
    matrix = np.asarray(matrix, dtype=float)
    if matrix.size == 0:
        return np.zeros(0)
    if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
        raise ValueError("Vectors must have the same dimension")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)


def find_most_similar(
    query_embedding: list[float],
    candidates: list[EmbeddingResult],
    top_k: int = 5,
) -> list[SimilarityResult]:
    if not candidates:
        return []
    _require_same_dimensions([c.embedding for c in candidates])
    scores = cosine_similarities(query_embedding, [c.embedding for c in candidates])
    order = np.argsort(-scores, kind="stable")[:top_k]
    return [
        SimilarityResult(
            score=float(scores[i]),
            text=candidates[i].text,
            metadata=candidates[i].metadata,
        )
        for i in order
    ]


def embedding_to_db_format(embedding: list[float]) -> str:
    """Serialize as ``[a,b,c]``."""
    return "[" + ",".join(repr(float(v)) for v in embedding) + "]"


def embedding_from_db_format(value: str) -> list[float]:
    stripped = value.strip().removeprefix("[").removesuffix("]")
    if not stripped:
        return []
    try:
        return [float(part.strip()) for part in stripped.split(",")]
    except ValueError as e:
        raise ValueError("Invalid embedding format in database") from e


def validate_embedding(embedding, expected_dimensions: int = EMBEDDING_DIMENSIONS) -> bool:
    if not isinstance(embedding, list) or len(embedding) != expected_dimensions:
        return False
    return all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and not math.isnan(v)
        for v in embedding
    )


def _require_same_dimensions(embeddings: list[list[float]]) -> int:
    dimensions = len(embeddings[0])
    if any(len(e) != dimensions for e in embeddings):
        raise ValueError("All embeddings must have the same dimensions")
    return dimensions


def calculate_embedding_stats(embeddings: list[list[float]]) -> EmbeddingStats:
    """Per-dimension mean, population std, min and max."""
    if not embeddings:
        raise ValueError("Cannot calculate stats for empty embedding array")

    dimensions = _require_same_dimensions(embeddings)
    arr = np.asarray(embeddings, dtype=float)
    return EmbeddingStats(
        mean=arr.mean(axis=0).tolist(),
        std=arr.std(axis=0).tolist(),
        min=arr.min(axis=0).tolist(),
        max=arr.max(axis=0).tolist(),
        dimensions=dimensions,
        count=len(embeddings),
    )

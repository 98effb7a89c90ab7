"""Knowledge retrieval over stored chunk embeddings.

SQLite has no vector index, so chunk embeddings are stored as ``[a,b,c]``
text and scored together as one numpy matrix. Keyword search gives
exact-term matches that semantic similarity can miss, and the enhanced
context merges both.
"""

import re
from dataclasses import dataclass

import numpy as np
import structlog

from ..db.repositories import KnowledgeRepository
from ..utils.exercise_utils import extract_mentioned_muscles, muscle_search_terms
from .embeddings import EmbeddingService, cosine_similarities, embedding_from_db_format

logger = structlog.get_logger(__name__)


@dataclass
class KnowledgeContext:
    """A retrieved chunk with its source and score."""

    content: str
    knowledge_id: int
    title: str
    similarity: float
    chunk_index: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.knowledge_id, self.chunk_index)

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "knowledge_id": self.knowledge_id,
            "title": self.title,
            "similarity": self.similarity,
            "chunk_index": self.chunk_index,
        }


def extract_search_terms(query: str) -> list[str]:
    """Lowercase words longer than 2 characters, punctuation stripped."""
    cleaned = re.sub(r"[^\w\s]", " ", query.lower())
    return [term for term in cleaned.split() if len(term) > 2]


class VectorSearch:
    """Similarity, keyword and hybrid search over READY knowledge."""

    def __init__(self, repository: KnowledgeRepository, embeddings: EmbeddingService | None = None):
        self.repository = repository
        self.embeddings = embeddings

    async def fetch_relevant_knowledge(
        self,
        query_embedding: list[float],
        top_k: int = 5,
        threshold: float = 0.3,
        user_id: int | None = None,
    ) -> list[KnowledgeContext]:
        """Top-k chunks by cosine similarity, keeping those at or above ``threshold``."""
        rows = await self.repository.list_ready_chunks(user_id=user_id)

        usable, vectors = [], []
        for row in rows:
            try:
                embedding = embedding_from_db_format(row["embedding"])
            except ValueError as e:
                embedding, error = None, str(e)
            else:
                error = None if len(embedding) == len(query_embedding) else "dimension mismatch"
            if error:
                logger.warning(
                    "chunk_embedding_unusable",
                    knowledge_id=row["knowledge_id"],
                    chunk_index=row["chunk_index"],
                    error=error,
                )
                continue
            usable.append(row)
            vectors.append(embedding)

        scores = cosine_similarities(query_embedding, np.array(vectors, dtype=float))
        order = [i for i in np.argsort(-scores, kind="stable") if scores[i] >= threshold]
        logger.debug("vector_search_done", scanned=len(rows), kept=len(order), top_k=top_k)
        return [
            KnowledgeContext(
                content=usable[i]["content"],
                knowledge_id=usable[i]["knowledge_id"],
                title=usable[i]["title"],
                similarity=float(scores[i]),
                chunk_index=usable[i]["chunk_index"],
            )
            for i in order[:top_k]
        ]

    async def keyword_search(
        self, query: str, top_k: int = 5, user_id: int | None = None
    ) -> list[KnowledgeContext]:
        """Chunks containing every search term.

        The score is the share of the chunk's words that are search terms,
        capped at 1.0.
        """
        terms = extract_search_terms(query)
        if not terms:
            logger.debug("keyword_search_no_terms", query=query)
            return []

        rows = await self.repository.list_ready_chunks(user_id=user_id, with_embeddings=False)
        results = []
        for row in rows:
            words = re.findall(r"\w+", row["content"].lower())
            if not words:
                continue
            if not all(term in words for term in terms):
                continue
            occurrences = sum(words.count(term) for term in terms)
            results.append(
                KnowledgeContext(
                    content=row["content"],
                    knowledge_id=row["knowledge_id"],
                    title=row["title"],
                    similarity=min(occurrences / len(words), 1.0),
                    chunk_index=row["chunk_index"],
                )
            )

        results.sort(key=lambda c: c.similarity, reverse=True)
        return results[:top_k]

    async def fetch_enhanced_knowledge_context(
        self,
        query: str,
        max_chunks: int = 8,
        similarity_threshold: float = 0.05,
        high_relevance_threshold: float = 0.3,
        strict_muscle_priority: bool = True,
        user_id: int | None = None,
    ) -> list[KnowledgeContext]:
        """Hybrid retrieval for a chat query.

        Vector and keyword hits are merged per (knowledge id, chunk index)
        keeping the higher score. Chunks about a muscle named in the query
        are promoted when ``strict_muscle_priority`` is set, then high
        relevance chunks come before the rest.
        """
        if self.embeddings is None:
            raise RuntimeError("VectorSearch needs an EmbeddingService for enhanced context")

        query_embedding = await self.embeddings.generate_query_embedding(query)
        vector_hits = await self.fetch_relevant_knowledge(
            query_embedding, top_k=max_chunks * 2, threshold=similarity_threshold, user_id=user_id
        )
        keyword_hits = await self.keyword_search(query, top_k=max_chunks, user_id=user_id)

        merged: dict[tuple[int, int], KnowledgeContext] = {}
        for hit in [*vector_hits, *keyword_hits]:
            existing = merged.get(hit.key)
            if existing is None or hit.similarity > existing.similarity:
                merged[hit.key] = hit

        muscle_terms: list[str] = []
        if strict_muscle_priority:
            for muscle in extract_mentioned_muscles(query):
                muscle_terms.extend(muscle_search_terms(muscle))

        def _mentions_muscle(chunk: KnowledgeContext) -> bool:
            text = f"{chunk.title} {chunk.content}".lower()
            return any(re.search(rf"\b{re.escape(term)}\b", text) for term in muscle_terms)

        ranked = sorted(
            merged.values(),
            key=lambda c: (
                not (muscle_terms and _mentions_muscle(c)),
                c.similarity < high_relevance_threshold,
                -c.similarity,
            ),
        )
        logger.info(
            "enhanced_context_built",
            vector_hits=len(vector_hits),
            keyword_hits=len(keyword_hits),
            merged=len(merged),
            muscle_priority=bool(muscle_terms),
        )
        return ranked[:max_chunks]

"""Tests for knowledge retrieval."""

import asyncio

import pytest
from conftest import FakeLLM, fake_vector, store_item

from hypertroq.models.knowledge import KnowledgeStatus
from hypertroq.rag.embeddings import EmbeddingService
from hypertroq.rag.vector_search import VectorSearch, extract_search_terms


@pytest.fixture
def search(knowledge_repo):
    return VectorSearch(knowledge_repo, EmbeddingService(FakeLLM(), batch_delay=0, retry_delay=0))


class TestExtractSearchTerms:
    def test_short_words_and_punctuation_dropped(self):
        assert extract_search_terms("How many sets, for a biceps?") == ["how", "many", "sets", "for", "biceps"]

    def test_empty(self):
        assert extract_search_terms("a of") == []


class TestFetchRelevantKnowledge:
    """Tests for similarity search."""

    def test_threshold_filters(self, temp_db_path, search):
        store_item(temp_db_path, "Chest", ["chest volume sets weekly"])
        store_item(temp_db_path, "Squats", ["squat depth and knee tracking"])

        results = asyncio.run(
            search.fetch_relevant_knowledge(fake_vector("chest volume sets"), threshold=0.3)
        )
        assert [r.title for r in results] == ["Chest"]
        assert results[0].similarity == pytest.approx(3 / (3**0.5 * 2))

    def test_only_ready_items(self, temp_db_path, search):
        store_item(temp_db_path, "Pending", ["chest volume sets"], status=KnowledgeStatus.PROCESSING)
        results = asyncio.run(search.fetch_relevant_knowledge(fake_vector("chest volume sets")))
        assert results == []

    def test_other_dimension_chunks_skipped(self, temp_db_path, search):
        store_item(temp_db_path, "Chest", ["chest volume sets weekly"])
        results = asyncio.run(search.fetch_relevant_knowledge([1.0, 0.0, 0.0], threshold=0.0))
        assert results == []

    def test_user_scoping(self, temp_db_path, search):
        store_item(temp_db_path, "Shared", ["chest volume sets shared"])
        store_item(temp_db_path, "Private", ["chest volume sets private"], user_id=5)
        query = fake_vector("chest volume sets")

        other = asyncio.run(search.fetch_relevant_knowledge(query, user_id=1))
        owner = asyncio.run(search.fetch_relevant_knowledge(query, user_id=5))
        everyone = asyncio.run(search.fetch_relevant_knowledge(query))

        assert {r.title for r in other} == {"Shared"}
        assert {r.title for r in owner} == {"Shared", "Private"}
        assert {r.title for r in everyone} == {"Shared", "Private"}

    def test_top_k(self, temp_db_path, search):
        store_item(temp_db_path, "Many", [f"chest volume note {i}" for i in range(6)])
        results = asyncio.run(
            search.fetch_relevant_knowledge(fake_vector("chest volume"), top_k=3, threshold=0.0)
        )
        assert len(results) == 3


class TestKeywordSearch:
    """Tests for keyword search."""

    def test_requires_every_term(self, temp_db_path, search):
        store_item(temp_db_path, "Both", ["chest volume sets weekly"])
        store_item(temp_db_path, "One", ["chest day is the best day"])

        results = asyncio.run(search.keyword_search("chest volume"))
        assert [r.title for r in results] == ["Both"]
        assert results[0].similarity == 0.5

    def test_no_terms(self, search):
        assert asyncio.run(search.keyword_search("a of")) == []


class TestEnhancedContext:
    """Tests for hybrid retrieval."""

    def _store_pair(self, db_path):
        store_item(db_path, "Curls", ["Biceps respond well to curls with a full stretch."])
        store_item(
            db_path,
            "Rest",
            ["Rest periods of two to three minutes help how many sets you complete."],
        )

    def test_muscle_priority(self, temp_db_path, search):
        self._store_pair(temp_db_path)
        results = asyncio.run(
            search.fetch_enhanced_knowledge_context("how many sets for biceps", similarity_threshold=0.05)
        )
        assert [r.title for r in results] == ["Curls", "Rest"]

    def test_similarity_order_without_priority(self, temp_db_path, search):
        self._store_pair(temp_db_path)
        results = asyncio.run(
            search.fetch_enhanced_knowledge_context(
                "how many sets for biceps", similarity_threshold=0.05, strict_muscle_priority=False
            )
        )
        assert [r.title for r in results] == ["Rest", "Curls"]

    def test_keyword_and_vector_hits_merged(self, temp_db_path, search):
        store_item(temp_db_path, "Exact", ["chest volume"])
        results = asyncio.run(search.fetch_enhanced_knowledge_context("chest volume"))
        assert len(results) == 1
        assert results[0].similarity == 1.0

    def test_max_chunks(self, temp_db_path, search):
        store_item(temp_db_path, "Many", [f"chest volume note {i}" for i in range(6)])
        results = asyncio.run(search.fetch_enhanced_knowledge_context("chest volume", max_chunks=2))
        assert len(results) == 2

    def test_requires_embeddings(self, knowledge_repo):
        with pytest.raises(RuntimeError):
            asyncio.run(VectorSearch(knowledge_repo).fetch_enhanced_knowledge_context("chest"))

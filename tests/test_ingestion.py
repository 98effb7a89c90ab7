"""Tests for knowledge ingestion."""

import asyncio

import pytest
from conftest import FakeLLM, create_user, store_item

from hypertroq.db import UserRepository
from hypertroq.errors import (
    ExternalServiceError,
    LimitExceededError,
    NotFoundError,
    UnsupportedFileTypeError,
    ValidationError,
)
from hypertroq.models.knowledge import KnowledgeSourceType, KnowledgeStatus
from hypertroq.rag.embeddings import EmbeddingService
from hypertroq.services.ingestion import KnowledgeIngestionService
from hypertroq.services.tier_limits import TierService

ARTICLE = (
    "Training volume is the number of hard sets per muscle per week. "
    "Most lifters grow well on ten to twenty weekly sets for each muscle group. "
    "Spread those sets over at least two sessions so that each workout stays productive."
)


class BrokenEmbedder(FakeLLM):
    async def embed(self, text, model=None):
        raise ExternalServiceError("embedding quota exhausted")


def _service(db_path, llm=None):
    embeddings = EmbeddingService(llm or FakeLLM(), batch_delay=0, retry_delay=0)
    return KnowledgeIngestionService(embeddings, db_path, TierService(db_path, cache_ttl=0))


class TestIngestText:
    """Tests for text ingestion."""

    def test_ready_with_embeddings(self, temp_db_path):
        item, result = asyncio.run(_service(temp_db_path).ingest_text(" Volume ", ARTICLE, "principles"))
        assert result.success
        assert item.title == "Volume"
        assert item.status is KnowledgeStatus.READY
        assert item.source_type is KnowledgeSourceType.TEXT
        assert result.chunks_created == len(item.chunks) == 1
        assert result.embeddings_generated == 1
        assert item.chunks[0].embedding is not None

    def test_failed_embeddings_stored_without_vector(self, temp_db_path):
        item, result = asyncio.run(
            _service(temp_db_path, BrokenEmbedder()).ingest_text("Volume", ARTICLE)
        )
        assert result.success
        assert item.status is KnowledgeStatus.READY
        assert item.chunks[0].embedding is None
        assert "Only 0/1 embeddings were generated successfully" in result.warnings

    def test_unexpected_processing_error_marks_error(self, temp_db_path, monkeypatch):
        def broken_chunker(text):
            raise RuntimeError("chunker crashed")

        monkeypatch.setattr("hypertroq.services.ingestion.chunk_fitness_content", broken_chunker)
        item, result = asyncio.run(_service(temp_db_path).ingest_text("Volume", ARTICLE))
        assert not result.success
        assert result.errors == ["Processing failed: chunker crashed"]
        assert item.status is KnowledgeStatus.ERROR

    def test_blank_input_rejected(self, temp_db_path):
        service = _service(temp_db_path)
        with pytest.raises(ValidationError):
            asyncio.run(service.ingest_text("  ", ARTICLE))
        with pytest.raises(ValidationError):
            asyncio.run(service.ingest_text("Volume", "\n"))

    def test_knowledge_item_limit(self, temp_db_path, free_user_id):
        for i in range(10):
            store_item(temp_db_path, f"Note {i}", ["weekly sets"], user_id=free_user_id)
        with pytest.raises(LimitExceededError):
            asyncio.run(_service(temp_db_path).ingest_text("One more", ARTICLE, user_id=free_user_id))


class TestIngestFile:
    """Tests for file uploads."""

    def test_text_file(self, temp_db_path, free_user_id):
        item, result = asyncio.run(
            _service(temp_db_path).ingest_file(
                ARTICLE.encode(), "volume.txt", "text/plain", user_id=free_user_id
            )
        )
        assert result.success
        assert item.title == "volume.txt"
        assert item.source_type is KnowledgeSourceType.FILE
        assert item.file_size == len(ARTICLE.encode())
        assert item.content == ARTICLE
        user = asyncio.run(UserRepository(temp_db_path).get(free_user_id))
        assert user.uploads_this_month == 1

    def test_extraction_failure_marks_error(self, temp_db_path):
        item, result = asyncio.run(
            _service(temp_db_path).ingest_file(b"\xff\xfe\xfa", "notes.txt", "text/plain", title="Notes")
        )
        assert not result.success
        assert item.status is KnowledgeStatus.ERROR
        assert item.error_message == "notes.txt is not valid UTF-8 text"

    def test_unexpected_extraction_error_marks_error(self, temp_db_path, monkeypatch):
        def corrupt(data, mime_type, file_name):
            raise RuntimeError("corrupt page stream")

        monkeypatch.setattr("hypertroq.services.ingestion.extract_text_from_file", corrupt)
        item, result = asyncio.run(
            _service(temp_db_path).ingest_file(b"%PDF-1.4", "scan.pdf", "application/pdf")
        )
        assert not result.success
        assert item.status is KnowledgeStatus.ERROR
        assert item.error_message == "Text extraction failed: corrupt page stream"

    def test_upload_limit(self, temp_db_path):
        user_id = create_user(temp_db_path, uploads_this_month=5)
        with pytest.raises(LimitExceededError) as exc_info:
            asyncio.run(
                _service(temp_db_path).ingest_file(ARTICLE.encode(), "v.txt", "text/plain", user_id=user_id)
            )
        assert exc_info.value.limit_type == "uploads"


class TestCheckUploadAllowed:
    def test_unsupported_type(self, temp_db_path):
        with pytest.raises(UnsupportedFileTypeError):
            asyncio.run(_service(temp_db_path).check_upload_allowed(None, 100, "image/png"))

    def test_tier_file_size(self, temp_db_path, free_user_id, pro_user_id):
        service = _service(temp_db_path)
        eleven_mb = 11 * 1024 * 1024
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(service.check_upload_allowed(free_user_id, eleven_mb, "application/pdf"))
        assert exc_info.value.message == "File exceeds the 10MB limit for the FREE plan"
        asyncio.run(service.check_upload_allowed(pro_user_id, eleven_mb, "application/pdf"))

    def test_unknown_user(self, temp_db_path):
        with pytest.raises(NotFoundError):
            asyncio.run(_service(temp_db_path).check_upload_allowed(999, 100, "text/plain"))


class TestReprocess:
    def test_rebuilds_chunks(self, temp_db_path):
        service = _service(temp_db_path)
        item, _ = asyncio.run(service.ingest_text("Volume", ARTICLE))
        result = asyncio.run(service.reprocess(item.id))
        assert result.success
        stats = asyncio.run(service.processing_stats(item.id))
        assert stats["total_chunks"] == 1
        assert stats["embedding_coverage"] == 1.0
        assert stats["processing_complete"]

    def test_missing_item(self, temp_db_path):
        with pytest.raises(NotFoundError):
            asyncio.run(_service(temp_db_path).reprocess(404))

    def test_viewer_only_document(self, temp_db_path):
        service = _service(temp_db_path)
        notice = "[PDF document available for viewing. File: scan.pdf]"
        item_id = store_item(temp_db_path, "Scan", ["placeholder"])
        asyncio.run(service.repository.update_content(item_id, notice))

        result = asyncio.run(service.reprocess(item_id))
        item = asyncio.run(service.repository.get(item_id, include_chunks=True))
        assert result.success
        assert result.embeddings_generated == 0
        assert [c.content for c in item.chunks] == [notice]
        assert item.status is KnowledgeStatus.READY

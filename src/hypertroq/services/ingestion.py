"""Knowledge ingestion: extract, chunk, embed and store."""

import time
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..config import load_app_config
from ..db.repositories import KnowledgeRepository
from ..errors import (
    HypertroqError,
    LimitExceededError,
    NotFoundError,
    UnsupportedFileTypeError,
    ValidationError,
)
from ..models.knowledge import (
    KnowledgeChunk,
    KnowledgeItem,
    KnowledgeSourceType,
    KnowledgeStatus,
)
from ..rag.chunking import chunk_fitness_content, validate_chunks
from ..rag.embeddings import EmbeddingService
from ..rag.file_processor import extract_text_from_file, is_file_type_supported
from .tier_limits import LimitType, TierService

logger = structlog.get_logger(__name__)

VIEWER_ONLY_MARKER = "[PDF document available for viewing"


@dataclass
class ProcessingResult:
    """Outcome of processing one knowledge item."""

    success: bool
    knowledge_item_id: int
    chunks_created: int = 0
    embeddings_generated: int = 0
    processing_time: float = 0.0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "knowledge_item_id": self.knowledge_item_id,
            "chunks_created": self.chunks_created,
            "embeddings_generated": self.embeddings_generated,
            "processing_time": round(self.processing_time, 3),
            "errors": self.errors,
            "warnings": self.warnings,
        }


class KnowledgeIngestionService:
    """Turns text and uploaded files into searchable knowledge items."""

    def __init__(
        self,
        embeddings: EmbeddingService,
        db_path: Path | None = None,
        tier_service: TierService | None = None,
        batch_size: int = 10,
    ):
        self.embeddings = embeddings
        self.repository = KnowledgeRepository(db_path)
        self.tiers = tier_service or TierService(db_path)
        self.batch_size = batch_size

    async def _check_limit(self, user_id: int, limit_type: LimitType) -> None:
        result = await self.tiers.enforce_limit(user_id, limit_type)
        if not result.allowed:
            raise LimitExceededError(limit_type.value, result.current, result.limit)

    async def check_upload_allowed(self, user_id: int | None, file_size: int, mime_type: str) -> None:
        """Raise if this upload would break file type, size or tier limits.

        Uploads without a user are admin uploads to the shared knowledge
        base and only the global size cap applies.
        """
        if not is_file_type_supported(mime_type):
            raise UnsupportedFileTypeError(f"File type {mime_type} is not supported")

        max_bytes = load_app_config().upload_max_bytes
        if user_id is not None:
            user = await self.tiers.load_user(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            max_bytes = min(max_bytes, user.limits.max_file_size * 1024 * 1024)
            if file_size > max_bytes:
                raise ValidationError(
                    f"File exceeds the {user.limits.max_file_size}MB limit for the "
                    f"{user.tier.value} plan",
                    {"file_size": file_size, "max_bytes": max_bytes},
                )
            await self._check_limit(user_id, LimitType.UPLOADS)
            await self._check_limit(user_id, LimitType.KNOWLEDGE_ITEMS)
        elif file_size > max_bytes:
            raise ValidationError(
                "File exceeds the upload size limit",
                {"file_size": file_size, "max_bytes": max_bytes},
            )

    async def ingest_text(
        self,
        title: str,
        content: str,
        category: str | None = None,
        user_id: int | None = None,
    ) -> tuple[KnowledgeItem, ProcessingResult]:
        if not title or not title.strip():
            raise ValidationError("Title is required")
        if not content or not content.strip():
            raise ValidationError("Content is required")
        if user_id is not None:
            await self._check_limit(user_id, LimitType.KNOWLEDGE_ITEMS)

        item = KnowledgeItem(
            title=title.strip(),
            source_type=KnowledgeSourceType.TEXT,
            status=KnowledgeStatus.PROCESSING,
            content=content,
            category=category,
            user_id=user_id,
        )
        item.id = await self.repository.create(item)
        logger.info("knowledge_text_created", item_id=item.id, chars=len(content))

        result = await self._process(item.id, content)
        return await self.repository.get(item.id, include_chunks=True), result

    async def ingest_file(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
        title: str | None = None,
        category: str | None = None,
        user_id: int | None = None,
    ) -> tuple[KnowledgeItem, ProcessingResult]:
        await self.check_upload_allowed(user_id, len(data), mime_type)

        item = KnowledgeItem(
            title=(title or file_name).strip(),
            source_type=KnowledgeSourceType.FILE,
            status=KnowledgeStatus.PROCESSING,
            file_name=file_name,
            mime_type=mime_type,
            file_size=len(data),
            category=category,
            user_id=user_id,
        )
        item.id = await self.repository.create(item)
        if user_id is not None:
            await self.tiers.increment_usage(user_id, LimitType.UPLOADS)
        logger.info("knowledge_file_created", item_id=item.id, file_name=file_name, bytes=len(data))

        try:
            text = extract_text_from_file(data, mime_type, file_name)
        except HypertroqError as e:
            logger.warning("knowledge_extraction_failed", item_id=item.id, error=e.message)
            return await self._extraction_failed(item.id, e.message)
        except Exception as e:
            logger.exception("knowledge_extraction_failed", item_id=item.id)
            return await self._extraction_failed(item.id, f"Text extraction failed: {e}")

        await self.repository.update_content(item.id, text)
        result = await self._process(item.id, text)
        return await self.repository.get(item.id, include_chunks=True), result

    async def _extraction_failed(self, item_id: int, message: str):
        await self.repository.update_status(item_id, KnowledgeStatus.ERROR, message)
        result = ProcessingResult(success=False, knowledge_item_id=item_id, errors=[message])
        return await self.repository.get(item_id), result

    async def reprocess(self, item_id: int) -> ProcessingResult:
        """Re-chunk and re-embed an item from its stored text."""
        item = await self.repository.get(item_id)
        if item is None:
            raise NotFoundError("Knowledge item", item_id)
        if not item.content.strip():
            raise ValidationError("No content available for reprocessing")

        logger.info("knowledge_reprocess_started", item_id=item_id, title=item.title)
        await self.repository.update_status(item_id, KnowledgeStatus.PROCESSING)
        return await self._process(item_id, item.content)

    async def _process(self, item_id: int, text: str) -> ProcessingResult:
        started = time.monotonic()
        result = ProcessingResult(success=False, knowledge_item_id=item_id)

        try:
            if VIEWER_ONLY_MARKER in text:
                # Nothing to search, but keep the notice as the item's single chunk.
                result.warnings.append(
                    "Text extraction was limited - document saved for viewing only"
                )
                await self.repository.replace_chunks(
                    item_id, [KnowledgeChunk(content=text, chunk_index=0, end_char=len(text))]
                )
                result.chunks_created = 1
            else:
                chunks = chunk_fitness_content(text)
                if not chunks:
                    raise ValidationError("Text chunking failed - no chunks were created")
                result.warnings.extend(validate_chunks(chunks).warnings)

                embedded = await self.embeddings.generate_embeddings_batch(
                    [c.content for c in chunks],
                    [{"chunk_index": c.index} for c in chunks],
                    batch_size=self.batch_size,
                )
                stored = []
                for chunk, embedding in zip(chunks, embedded):
                    stored.append(
                        KnowledgeChunk(
                            content=chunk.content,
                            chunk_index=chunk.index,
                            start_char=chunk.start_char,
                            end_char=chunk.end_char,
                            embedding=None if embedding.failed else embedding.embedding,
                        )
                    )
                await self.repository.replace_chunks(item_id, stored)

                result.chunks_created = len(stored)
                result.embeddings_generated = sum(1 for c in stored if c.embedding is not None)
                if result.embeddings_generated < result.chunks_created:
                    result.warnings.append(
                        f"Only {result.embeddings_generated}/{result.chunks_created} "
                        "embeddings were generated successfully"
                    )
        except Exception as e:
            logger.exception("knowledge_processing_failed", item_id=item_id)
            message = e.message if isinstance(e, HypertroqError) else f"Processing failed: {e}"
            await self.repository.update_status(item_id, KnowledgeStatus.ERROR, message)
            result.errors.append(message)
            result.processing_time = time.monotonic() - started
            return result

        await self.repository.update_status(item_id, KnowledgeStatus.READY)
        result.success = True
        result.processing_time = time.monotonic() - started
        logger.info(
            "knowledge_processing_done",
            item_id=item_id,
            chunks=result.chunks_created,
            embeddings=result.embeddings_generated,
            seconds=round(result.processing_time, 2),
        )
        return result

    async def processing_stats(self, item_id: int) -> dict:
        """Chunk and embedding coverage for an item."""
        item = await self.repository.get(item_id, include_chunks=True)
        if item is None:
            raise NotFoundError("Knowledge item", item_id)
        total = len(item.chunks)
        with_embeddings = sum(1 for c in item.chunks if c.embedding is not None)
        return {
            "status": item.status.value,
            "total_chunks": total,
            "chunks_with_embeddings": with_embeddings,
            "avg_chunk_size": round(sum(c.length for c in item.chunks) / total) if total else 0,
            "processing_complete": item.status is KnowledgeStatus.READY,
            "embedding_coverage": with_embeddings / total if total else 0.0,
        }



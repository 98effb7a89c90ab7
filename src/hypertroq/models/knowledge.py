"""Knowledge base items and their chunks."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class KnowledgeSourceType(str, Enum):
    FILE = "FILE"
    TEXT = "TEXT"


class KnowledgeStatus(str, Enum):
    """Processing lifecycle of a knowledge item."""

    UPLOADING = "UPLOADING"
    PROCESSING = "PROCESSING"
    READY = "READY"
    ERROR = "ERROR"


@dataclass
class KnowledgeChunk:
    """A slice of a knowledge item with its embedding."""

    content: str
    chunk_index: int
    start_char: int = 0
    end_char: int = 0
    embedding: list[float] | None = None
    knowledge_item_id: int | None = None
    id: int | None = None

    @property
    def length(self) -> int:
        return len(self.content)


@dataclass
class KnowledgeItem:
    """A document in the coaching knowledge base."""

    title: str
    source_type: KnowledgeSourceType = KnowledgeSourceType.TEXT
    status: KnowledgeStatus = KnowledgeStatus.UPLOADING
    content: str = ""
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    category: str | None = None
    user_id: int | None = None
    error_message: str | None = None
    id: int | None = None
    created_at: datetime | None = None
    chunks: list[KnowledgeChunk] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary (chunk bodies are omitted)."""
        return {
            "id": self.id,
            "title": self.title,
            "source_type": self.source_type.value,
            "status": self.status.value,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "category": self.category,
            "user_id": self.user_id,
            "error_message": self.error_message,
            "content_length": len(self.content),
            "chunk_count": len(self.chunks),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

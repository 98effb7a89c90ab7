"""Request-scoped access to services held on app state."""

from fastapi import Request

from ..db.repositories import KnowledgeRepository
from ..errors import ValidationError
from ..llm.client import GeminiClient
from ..rag.embeddings import EmbeddingService
from ..rag.query_translation import QueryTranslator
from ..rag.vector_search import VectorSearch
from ..services.ingestion import KnowledgeIngestionService
from ..services.tier_limits import TierService
from .job_tracker import JobTracker


def get_db_path(request: Request):
    return request.app.state.db_path


def get_llm(request: Request):
    """The app's LLM client, created on first use so the API key is only needed for AI routes."""
    if request.app.state.llm is None:
        request.app.state.llm = GeminiClient()
    return request.app.state.llm


def get_tier_service(request: Request) -> TierService:
    return request.app.state.tier_service


def get_job_tracker(request: Request) -> JobTracker:
    return request.app.state.job_tracker


def get_embeddings(request: Request) -> EmbeddingService:
    return EmbeddingService(get_llm(request))


def get_translator(request: Request) -> QueryTranslator:
    """One translator per app so translations stay cached across requests."""
    if request.app.state.translator is None:
        request.app.state.translator = QueryTranslator(get_llm(request))
    return request.app.state.translator


def get_retriever(request: Request) -> VectorSearch:
    return VectorSearch(KnowledgeRepository(get_db_path(request)), get_embeddings(request))


def get_ingestion_service(request: Request) -> KnowledgeIngestionService:
    return KnowledgeIngestionService(
        get_embeddings(request),
        db_path=get_db_path(request),
        tier_service=get_tier_service(request),
    )


def require_user_id(x_user_id: int | None) -> int:
    """The caller's user id from the X-User-Id header."""
    if x_user_id is None:
        raise ValidationError("X-User-Id header is required")
    return x_user_id

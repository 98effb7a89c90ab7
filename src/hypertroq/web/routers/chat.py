"""Coaching chat routes."""

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, Field

from ...coach.chat import CoachChatService
from ...llm.client import ChatMessage
from ..deps import get_db_path, get_llm, get_retriever, get_tier_service, get_translator, require_user_id

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatTurn(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str
    history: list[ChatTurn] = Field(default_factory=list)
    model: str | None = None  # "flash" or "pro" for program generation


@router.post("")
async def chat(request: Request, body: ChatRequest, x_user_id: int | None = Header(default=None)):
    """Answer a message using the caller's profile, memory and the knowledge base."""
    user_id = require_user_id(x_user_id)
    service = CoachChatService(
        get_llm(request),
        get_retriever(request),
        db_path=get_db_path(request),
        tier_service=get_tier_service(request),
        translator=get_translator(request),
    )
    history = [ChatMessage(role=turn.role, content=turn.content) for turn in body.history]
    response = await service.generate_response(user_id, history, body.message, body.model)
    return response.to_dict()

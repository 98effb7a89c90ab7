"""Thin async wrapper over the Gemini API (google-genai)."""

from dataclasses import dataclass

import structlog
from google import genai
from google.genai import types as genai_types

from ..config import AppConfig, load_app_config
from ..errors import ExternalServiceError

logger = structlog.get_logger(__name__)


@dataclass
class ChatMessage:
    """One turn of a conversation. ``role`` is "user" or "assistant"/"model"."""

    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        return cls(role=data.get("role", "user"), content=data.get("content", ""))


@dataclass
class GenerationSettings:
    """Sampling settings for one generate call."""

    model: str
    temperature: float = 0.4
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 8192
    system_instruction: str | None = None


def _to_contents(messages: list[ChatMessage]) -> list[genai_types.Content]:
    return [
        genai_types.Content(
            role="user" if m.role.lower() == "user" else "model",
            parts=[genai_types.Part(text=m.content)],
        )
        for m in messages
    ]


class GeminiClient:
    """Generates text and embeddings through one shared ``genai.Client``."""

    def __init__(self, api_key: str | None = None, config: AppConfig | None = None):
        self.config = config or load_app_config()
        api_key = api_key or self.config.get_api_key()
        if not api_key:
            raise ExternalServiceError(
                f"Gemini API key not set. Export {self.config.gemini_api_key_env}."
            )
        self._client = genai.Client(api_key=api_key)

    async def generate(self, messages: list[ChatMessage], settings: GenerationSettings) -> str:
        """Run a chat completion and return the response text ("" if none)."""
        config = genai_types.GenerateContentConfig(
            system_instruction=settings.system_instruction,
            temperature=settings.temperature,
            top_p=settings.top_p,
            top_k=settings.top_k,
            max_output_tokens=settings.max_output_tokens,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=settings.model,
                contents=_to_contents(messages),
                config=config,
            )
        except Exception as e:
            logger.exception("gemini_generate_failed", model=settings.model)
            raise ExternalServiceError(f"Gemini generation failed: {e}") from e

        usage = getattr(response, "usage_metadata", None)
        logger.debug(
            "gemini_generate_done",
            model=settings.model,
            prompt_tokens=getattr(usage, "prompt_token_count", None),
            output_tokens=getattr(usage, "candidates_token_count", None),
        )
        return response.text or ""

    async def generate_text(self, prompt: str, model: str, **kwargs) -> str:
        """Single-prompt convenience over :meth:`generate`."""
        settings = GenerationSettings(model=model, **kwargs)
        return await self.generate([ChatMessage(role="user", content=prompt)], settings)

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        """Embed one text with the configured embedding model."""
        model = model or self.config.embedding_model
        try:
            response = await self._client.aio.models.embed_content(model=model, contents=text)
        except Exception as e:
            message = str(e)
            if "API_KEY" in message:
                detail = "Gemini API key is not properly configured"
            elif "quota" in message or "limit" in message:
                detail = "API quota exceeded. Please try again later."
            else:
                detail = f"Failed to generate embedding: {message}"
            raise ExternalServiceError(detail) from e

        if not response.embeddings or not response.embeddings[0].values:
            raise ExternalServiceError("Failed to generate embedding - no values returned")
        return list(response.embeddings[0].values)

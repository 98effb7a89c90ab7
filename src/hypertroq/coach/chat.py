"""Coaching chat: retrieval, generation and long-term memory."""

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..db.repositories import (
    AIConfigRepository,
    ClientMemoryRepository,
    ExerciseRepository,
    UserProfileRepository,
)
from ..errors import ExternalServiceError, LimitExceededError, NotFoundError, ValidationError
from ..llm.client import ChatMessage, GenerationSettings
from ..models.user_profile import MemoryUpdate
from ..rag.query_generator import generate_sub_queries, should_use_multi_query
from ..rag.query_rewriting import rewrite_query
from ..rag.query_translation import QueryTranslator
from ..rag.vector_search import KnowledgeContext, VectorSearch
from ..services.tier_limits import LimitType, TierService
from .program_generator import (
    ProgramGenerationResult,
    WorkoutProgramGenerator,
    detect_workout_program_intent,
)
from .prompts import format_context_for_prompt, generate_exercise_context, get_system_prompt

logger = structlog.get_logger(__name__)

MEMORY_PROMPT = """
    Analyze the following user message and AI response.
    Your task is to identify and extract any new, lasting, and important information about the user that should be saved to their long-term memory.
    This includes new or updated goals, new injuries or physical limitations, significant preferences (e.g., "I hate squats"), personal records, or important life events that could impact training (e.g., "I'm training for a marathon," "I'm going on vacation next month").
    Do NOT extract trivial information or one-off questions. Focus only on facts that will be important for personalizing future advice.

    **User Message:** "{user_message}"
    **AI Response:** "{ai_response}"

    If you found new information to save, provide it as a JSON object with one or more of the following keys: 'newGoals', 'newPreferences', 'newInjuries', 'otherNotes'.
    Each key should be an array of strings.
    If no new, lasting information is present, respond with an empty JSON object {{}}.

    Example 1:
    User Message: "My left shoulder has been bugging me on bench press lately."
    AI Response: "Okay, let's be careful with that. We can substitute bench press with a neutral grip machine press to see if that helps. Make sure to keep me updated on how your shoulder feels."
    JSON Output: {{"newInjuries": ["Left shoulder discomfort during bench press."]}}

    Example 2:
    User Message: "What's the best split for me?"
    AI Response: "Based on your goal to build overall muscle, a Full Body split 3 times a week would be a great start."
    JSON Output: {{}}
"""


@dataclass
class ChatResponse:
    """An assistant reply with the knowledge it drew on."""

    content: str
    route: str  # program, multi_query, single_query or no_knowledge
    citations: list[str] = field(default_factory=list)
    knowledge: list[KnowledgeContext] = field(default_factory=list)
    memory_updated: bool = False

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "route": self.route,
            "citations": self.citations,
            "knowledge": [k.to_dict() for k in self.knowledge],
            "memory_updated": self.memory_updated,
        }


def parse_memory_update(text: str) -> MemoryUpdate | None:
    """Parse the memory model's answer. Only a bare JSON object is accepted."""
    text = text.strip()
    if not (text.startswith("{") and text.endswith("}")):
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("memory_update_invalid_json", response=text[:200])
        return None
    if not isinstance(data, dict):
        return None
    return MemoryUpdate.from_dict(data)


def merge_contexts(batches: list[list[KnowledgeContext]], max_chunks: int) -> list[KnowledgeContext]:
    """Union of several retrievals keeping each chunk's best score."""
    merged: dict[tuple[int, int], KnowledgeContext] = {}
    for batch in batches:
        for chunk in batch:
            existing = merged.get(chunk.key)
            if existing is None or chunk.similarity > existing.similarity:
                merged[chunk.key] = chunk
    ranked = sorted(merged.values(), key=lambda c: c.similarity, reverse=True)
    return ranked[:max_chunks]


class CoachChatService:
    """Answers a user's chat message within their tier's limits."""

    def __init__(
        self,
        llm,
        retriever: VectorSearch,
        db_path: Path | None = None,
        tier_service: TierService | None = None,
        translator: QueryTranslator | None = None,
    ):
        self.llm = llm
        self.retriever = retriever
        self.translator = translator or QueryTranslator(llm)
        self.tiers = tier_service or TierService(db_path)
        self.ai_config = AIConfigRepository(db_path)
        self.profiles = UserProfileRepository(db_path)
        self.memories = ClientMemoryRepository(db_path)
        self.exercises = ExerciseRepository(db_path)

    async def _retrieve(self, message: str, config, advanced: bool, user_id: int):
        if not config.use_knowledge_base:
            logger.debug("knowledge_base_disabled")
            return "no_knowledge", []

        query = await self.translator.translate_to_english(message)
        if advanced and should_use_multi_query(query):
            queries = await generate_sub_queries(self.llm, query, model=config.free_model_name)
            batches = await asyncio.gather(
                *(
                    self.retriever.fetch_enhanced_knowledge_context(
                        sub_query,
                        max_chunks=config.rag_max_chunks,
                        similarity_threshold=config.rag_similarity_threshold,
                        high_relevance_threshold=config.rag_high_relevance_threshold,
                        strict_muscle_priority=config.strict_muscle_priority,
                        user_id=user_id,
                    )
                    for sub_query in queries
                )
            )
            logger.debug("multi_query_retrieval", queries=len(queries))
            return "multi_query", merge_contexts(list(batches), config.rag_max_chunks)

        rewrite = await rewrite_query(self.llm, query, model=config.free_model_name)
        knowledge = await self.retriever.fetch_enhanced_knowledge_context(
            rewrite.search_query,
            max_chunks=config.rag_max_chunks,
            similarity_threshold=config.rag_similarity_threshold,
            high_relevance_threshold=config.rag_high_relevance_threshold,
            strict_muscle_priority=config.strict_muscle_priority,
            user_id=user_id,
        )
        return "single_query", knowledge

    async def generate_response(
        self,
        user_id: int,
        history: list[ChatMessage],
        message: str,
        selected_model: str | None = None,
    ) -> ChatResponse:
        if not message or not message.strip():
            raise ValidationError("Message cannot be empty")

        user = await self.tiers.load_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        config, profile, memory = await asyncio.gather(
            self.ai_config.get(),
            self.profiles.get_by_user(user_id),
            self.memories.get_or_create(user_id),
        )

        limit = await self.tiers.enforce_limit(user_id, LimitType.AI_INTERACTIONS)
        if not limit.allowed:
            raise LimitExceededError(LimitType.AI_INTERACTIONS.value, limit.current, limit.limit)

        exercise_context = generate_exercise_context(await self.exercises.list_approved())

        response = None
        if detect_workout_program_intent(message):
            generator = WorkoutProgramGenerator(self.llm, self.retriever, exercise_context)
            try:
                result = await generator.generate(
                    message, config, profile, history, selected_model, user_id=user_id
                )
            except ExternalServiceError as e:
                logger.warning("program_route_failed", user_id=user_id, error=e.message)
            else:
                response = ChatResponse(
                    content=result.content, route="program", citations=result.citations
                )

        if response is None:
            response = await self._answer(
                user, history, message, config, profile, memory, exercise_context
            )

        await self.tiers.increment_usage(user_id, LimitType.AI_INTERACTIONS)
        logger.info("chat_response", user_id=user_id, route=response.route, chars=len(response.content))

        if user.limits.has_conversation_memory:
            response.memory_updated = await self.update_memory(user_id, message, response.content)
        return response

    async def _answer(self, user, history, message, config, profile, memory, exercise_context) -> ChatResponse:
        """Standard reply: retrieve knowledge, then generate with the tier's model."""
        route, knowledge = await self._retrieve(
            message, config, user.limits.can_access_advanced_rag, user.id
        )
        system_prompt = config.system_prompt or get_system_prompt(profile, exercise_context)
        context = format_context_for_prompt(profile, memory, knowledge)
        settings = GenerationSettings(
            model=config.pro_model_name if user.tier.is_pro else config.free_model_name,
            temperature=config.temperature,
            top_p=config.top_p,
            top_k=config.top_k,
            max_output_tokens=config.max_tokens,
            system_instruction=f"{system_prompt}\n\n{context}",
        )
        content = await self.llm.generate(
            [*history, ChatMessage(role="user", content=message)], settings
        )
        return ChatResponse(
            content=content,
            route=route,
            citations=list(dict.fromkeys(k.title for k in knowledge)),
            knowledge=knowledge,
        )

    async def update_memory(self, user_id: int, user_message: str, ai_response: str) -> bool:
        """Extract lasting facts from the exchange into client memory.

        Failures are logged and reported as False; the chat reply stands.
        """
        try:
            return await self._extract_memory(user_id, user_message, ai_response)
        except Exception:
            logger.exception("memory_update_failed", user_id=user_id)
            return False

    async def _extract_memory(self, user_id: int, user_message: str, ai_response: str) -> bool:
        config = await self.ai_config.get()
        text = await self.llm.generate_text(
            MEMORY_PROMPT.format(user_message=user_message, ai_response=ai_response),
            model=config.free_model_name,
        )

        update = parse_memory_update(text)
        if update is None or not update.has_new_info:
            logger.debug("memory_update_none", user_id=user_id)
            return False

        memory = await self.memories.get_or_create(user_id)
        if not memory.apply(update):
            return False
        await self.memories.save(memory)
        logger.info("memory_updated", user_id=user_id)
        return True

    async def generate_program(
        self,
        user_id: int,
        prompt: str,
        history: list[ChatMessage] | None = None,
        selected_model: str | None = None,
    ) -> ProgramGenerationResult:
        """Generate a workout program, counting it against the programs limit."""
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")
        if await self.tiers.load_user(user_id) is None:
            raise NotFoundError("User", user_id)
        limit = await self.tiers.enforce_limit(user_id, LimitType.PROGRAMS)
        if not limit.allowed:
            raise LimitExceededError(LimitType.PROGRAMS.value, limit.current, limit.limit)

        config, profile, exercises = await asyncio.gather(
            self.ai_config.get(),
            self.profiles.get_by_user(user_id),
            self.exercises.list_approved(),
        )
        generator = WorkoutProgramGenerator(
            self.llm, self.retriever, generate_exercise_context(exercises)
        )
        result = await generator.generate(
            prompt, config, profile, history, selected_model, user_id=user_id
        )
        await self.tiers.increment_usage(user_id, LimitType.PROGRAMS)
        return result

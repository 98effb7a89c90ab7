"""Workout program generation with multi-query retrieval.

Program requests pull knowledge per category (program templates, the
muscles the user mentioned, general principles and common myths) instead of
one similarity search over the raw prompt, then ask the model for a program
built only from that context.
"""

import asyncio
import re
from dataclasses import dataclass, field

import structlog

from ..config import AIConfiguration
from ..errors import ExternalServiceError, HypertroqError
from ..llm.client import ChatMessage, GenerationSettings
from ..models.user_profile import UserProfile
from ..rag.vector_search import KnowledgeContext, VectorSearch
from .prompts import get_system_prompt

logger = structlog.get_logger(__name__)

PROGRAM_KEYWORDS = [
    "create a program",
    "create program",
    "workout program",
    "training program",
    "workout plan",
    "training plan",
    "routine",
    "schedule me a workout",
    "schedule workout",
    "design a program",
    "design program",
    "build a program",
    "build program",
    "workout routine",
    "training routine",
    "full program",
    "weekly plan",
    "split routine",
    "training split",
    "program for me",
    "workout schedule",
]

PROGRAM_PATTERNS = [
    re.compile(r"create.*\d.*day.*workout", re.IGNORECASE),
    re.compile(r"create.*\d.*day.*program", re.IGNORECASE),
    re.compile(r"design.*\d.*day.*workout", re.IGNORECASE),
    re.compile(r"\d.*day.*workout.*program", re.IGNORECASE),
    re.compile(r"\d.*day.*training.*program", re.IGNORECASE),
    re.compile(r"program.*\d.*day", re.IGNORECASE),
    re.compile(r"workout.*\d.*day", re.IGNORECASE),
]

REVIEW_KEYWORDS = [
    f"{verb} my {thing}"
    for verb in ("review", "check", "evaluate", "analyze")
    for thing in ("program", "workout", "routine")
] + [
    "feedback on my program",
    "feedback on my workout",
    "feedback on my routine",
    "what do you think of my program",
    "what do you think of my workout",
    "rate my program",
    "rate my workout",
    "critique my program",
]

REVIEW_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"here.*is.*my.*program",
        r"here.*is.*my.*workout",
        r"this.*is.*my.*program",
        r"this.*is.*my.*workout",
        r"my.*current.*program",
        r"my.*current.*workout",
        r"is.*this.*program.*good",
        r"is.*this.*workout.*good",
    )
]

SET_REP_PATTERNS = [
    re.compile(r"\d+\s*x\s*\d+"),
    re.compile(r"\d+\s*sets?\s*of\s*\d+", re.IGNORECASE),
    re.compile(r"\d+\s*reps?", re.IGNORECASE),
    re.compile(r"\d+\s*sets?", re.IGNORECASE),
]

COMMON_EXERCISES = [
    "squat",
    "deadlift",
    "bench press",
    "row",
    "pull up",
    "pullup",
    "curl",
    "extension",
    "raise",
    "press",
    "fly",
    "dip",
    "lunge",
]

# User term -> knowledge base categories
MUSCLE_CATEGORIES: dict[str, list[str]] = {
    "chest": ["chest"],
    "pectorals": ["chest"],
    "pecs": ["chest"],
    "biceps": ["elbow_flexors"],
    "bicep": ["elbow_flexors"],
    "arms": ["elbow_flexors", "triceps", "forearms"],
    "triceps": ["triceps"],
    "tricep": ["triceps"],
    "shoulders": ["shoulders"],
    "delts": ["shoulders"],
    "deltoids": ["shoulders"],
    "back": ["back"],
    "lats": ["back"],
    "latissimus": ["back"],
    "rhomboids": ["back"],
    "traps": ["back"],
    "trapezius": ["back"],
    "legs": ["legs", "quadriceps", "hamstrings", "glutes", "calves", "adductors"],
    "quads": ["quadriceps"],
    "quadriceps": ["quadriceps"],
    "adductors": ["adductors"],
    "adductor": ["adductors"],
    "hamstrings": ["hamstrings"],
    "glutes": ["glutes"],
    "calves": ["calves"],
    "abs": ["abs"],
    "core": ["abs"],
    "abdominals": ["abs"],
    "forearms": ["forearms"],
    "forearm": ["forearms"],
}

MUSCLE_TERMS = [
    "chest", "pectorals", "pecs", "biceps", "bicep", "arms",
    "triceps", "tricep", "shoulders", "delts", "deltoids",
    "back", "lats", "latissimus", "rhomboids", "traps", "trapezius",
    "legs", "quads", "quadriceps", "hamstrings", "glutes", "calves",
    "abs", "core", "abdominals", "forearms", "forearm",
]  # fmt: skip

PROGRAMS_CATEGORY = "hypertrophy_programs"
PRINCIPLES_CATEGORY = "hypertrophy_principles"
MYTHS_CATEGORY = "myths"
# Categories rendered under the muscle-specific heading
MUSCLE_SECTION_CATEGORIES = (
    "chest", "back", "shoulders", "elbow_flexors", "triceps",
    "quadriceps", "hamstrings", "glutes", "calves", "abs",
)  # fmt: skip
CHUNKS_PER_CATEGORY = 5

MODEL_ALIASES = {
    "flash": "gemini-2.5-flash",
    "pro": "gemini-2.5-pro",
}

PROGRAM_DESIGNER_INSTRUCTIONS = """
# TASK: Workout Program Generation with Strict Requirements

## ENHANCED PROGRAM DESIGN REQUIREMENTS:

1. **KB-Based Training Adherence**: ALL recommendations MUST come from the provided knowledge context
2. **Set Volume Logic Implementation**:
   - 72h frequency (Upper/Lower): 2-4 sets per muscle group per session
   - 48h frequency (Full Body): 1-3 sets per muscle group per session
   - Maximum ~20 total sets per session to avoid excessive fatigue
   - Multiple exercises for same muscle: distribute sets within range

3. **Exercise Selection Compliance**:
   - ONLY use exercises from knowledge base context for hypertrophy programs
   - Prioritize machines and cables for stability

4. **Mandatory Table Format** (DO NOT specify sets/reps for individual exercises):
| Exercise | Notes |
|----------|-------|
| Exercise Name | KB-based guidance and technique notes |

5. **General Volume and Intensity Guidelines** (provide as separate advice):
   - Include general rep ranges (5-10 for hypertrophy) in program overview
   - Mention rest periods (2-5 minutes) as general guidance
   - Reference set volume principles from KB without specifying per exercise
   - Provide frequency recommendations based on training split

6. **Myths Prevention**: Cross-check against misconceptions in KB
7. **Professional Coaching Style**: Expert personal trainer communication

## PROGRAM STRUCTURE GUIDELINES:
- Provide general volume recommendations in program introduction (not per exercise)
- Include overall rep ranges and rest periods as program-wide guidance
- Focus exercise table on movement selection and technique notes only
- Give total session volume targets (e.g., "aim for 10-20 total sets per session")
- Explain frequency patterns (e.g., "train each muscle 2x per week")

Create a comprehensive, evidence-based program following these strict requirements."""


@dataclass
class CategoryResult:
    """Chunks retrieved for one knowledge category."""

    query: str
    chunks: list[KnowledgeContext] = field(default_factory=list)


@dataclass
class ProgramGenerationResult:
    content: str
    citations: list[str]

    def to_dict(self) -> dict:
        return {"content": self.content, "citations": self.citations}


def detect_workout_program_intent(prompt: str) -> bool:
    lowered = prompt.lower()
    if any(keyword in lowered for keyword in PROGRAM_KEYWORDS):
        return True
    return any(pattern.search(prompt) for pattern in PROGRAM_PATTERNS)


def _has_workout_structure(prompt: str) -> bool:
    """At least 3 set/rep indicators and 2 common exercise names."""
    indicators = sum(len(pattern.findall(prompt)) for pattern in SET_REP_PATTERNS)
    lowered = prompt.lower()
    exercise_count = sum(1 for exercise in COMMON_EXERCISES if exercise in lowered)
    return indicators >= 3 and exercise_count >= 2


def detect_program_review_intent(prompt: str) -> bool:
    lowered = prompt.lower()
    if any(keyword in lowered for keyword in REVIEW_KEYWORDS):
        return True
    if any(pattern.search(prompt) for pattern in REVIEW_PATTERNS):
        return True
    return _has_workout_structure(prompt)


def extract_muscle_groups(prompt: str) -> list[str]:
    """Muscle terms mentioned in the prompt, by substring."""
    lowered = prompt.lower()
    return [term for term in MUSCLE_TERMS if term in lowered]


def get_muscle_specific_queries(muscles: list[str]) -> list[str]:
    categories: list[str] = []
    for muscle in muscles:
        for category in MUSCLE_CATEGORIES.get(muscle, [muscle]):
            if category not in categories:
                categories.append(category)
    return categories


def _categories_for(prompt: str) -> list[str]:
    categories = [
        PROGRAMS_CATEGORY,
        *get_muscle_specific_queries(extract_muscle_groups(prompt)),
        PRINCIPLES_CATEGORY,
        MYTHS_CATEGORY,
    ]
    return list(dict.fromkeys(categories))


async def perform_multi_query_rag(
    prompt: str,
    retriever: VectorSearch,
    threshold: float = 0.05,
    user_id: int | None = None,
) -> list[CategoryResult]:
    """Search every relevant category concurrently, 5 chunks each.

    A category whose search fails contributes an empty result.
    """
    categories = _categories_for(prompt)
    logger.info("multi_query_rag_started", categories=categories)

    async def _search(category: str) -> CategoryResult:
        try:
            chunks = await retriever.fetch_enhanced_knowledge_context(
                category,
                max_chunks=CHUNKS_PER_CATEGORY,
                similarity_threshold=threshold,
                user_id=user_id,
            )
        except Exception:
            logger.exception("category_search_failed", category=category)
            return CategoryResult(query=category)
        return CategoryResult(query=category, chunks=chunks)

    results = await asyncio.gather(*(_search(c) for c in categories))
    logger.info(
        "multi_query_rag_done",
        categories=len(categories),
        chunks=sum(len(r.chunks) for r in results),
    )
    return list(results)


def format_program_generation_context(results: list[CategoryResult]) -> str:
    """Order retrieved chunks into labelled sections inside [KNOWLEDGE] tags."""
    if not results:
        return ""

    sections: list[str] = []

    def _add_chunks(result: CategoryResult) -> None:
        for chunk in result.chunks:
            sections.append(chunk.content)
            sections.append("---")

    programs = [r for r in results if r.query == PROGRAMS_CATEGORY]
    if programs:
        sections.append("## HYPERTROPHY PROGRAM TEMPLATES")
        for result in programs:
            _add_chunks(result)

    muscles = [r for r in results if r.query in MUSCLE_SECTION_CATEGORIES]
    if muscles:
        sections.append("\n## MUSCLE-SPECIFIC TRAINING GUIDANCE")
        for result in muscles:
            if result.chunks:
                sections.append(f"\n### {result.query.upper()} TRAINING")
                _add_chunks(result)

    for category, heading in (
        (PRINCIPLES_CATEGORY, "\n## TRAINING PRINCIPLES"),
        (MYTHS_CATEGORY, "\n## MYTHS TO AVOID"),
    ):
        matching = [r for r in results if r.query == category]
        if matching:
            sections.append(heading)
            for result in matching:
                _add_chunks(result)

    return "[KNOWLEDGE]\n" + "\n".join(sections) + "\n[/KNOWLEDGE]"


def create_program_designer_prompt(
    base_prompt: str,
    user_prompt: str,
    knowledge: str,
    hypertrophy_instructions: str = "",
) -> str:
    hypertrophy_section = ""
    if hypertrophy_instructions:
        hypertrophy_section = (
            "\n\n## HYPERTROPHY TRAINING GUIDELINES FROM ADMIN CONFIGURATION\n"
            f"{hypertrophy_instructions}\n\n"
        )
    return (
        f"<SYSTEM_PROMPT>\n{base_prompt}\n{hypertrophy_section}\n"
        f"{PROGRAM_DESIGNER_INSTRUCTIONS}\n</SYSTEM_PROMPT>\n\n"
        f"<KNOWLEDGE>\n{knowledge}\n</KNOWLEDGE>\n\n"
        f"<USER_QUERY>\n{user_prompt}\n</USER_QUERY>"
    )


def resolve_model_name(selected: str | None, config: AIConfiguration) -> str:
    if selected and selected in MODEL_ALIASES:
        return MODEL_ALIASES[selected]
    return config.pro_model_name or "gemini-2.5-pro"


class WorkoutProgramGenerator:
    """Builds workout programs from categorized knowledge retrieval."""

    def __init__(self, llm, retriever: VectorSearch, exercise_context: str = ""):
        self.llm = llm
        self.retriever = retriever
        self.exercise_context = exercise_context

    async def generate(
        self,
        prompt: str,
        config: AIConfiguration,
        profile: UserProfile | None = None,
        history: list[ChatMessage] | None = None,
        selected_model: str | None = None,
        user_id: int | None = None,
    ) -> ProgramGenerationResult:
        try:
            results = await perform_multi_query_rag(
                prompt, self.retriever, config.rag_similarity_threshold, user_id=user_id
            )
            knowledge = format_program_generation_context(results)
            full_prompt = create_program_designer_prompt(
                get_system_prompt(profile, self.exercise_context),
                prompt,
                knowledge,
                config.hypertrophy_instructions,
            )

            settings = GenerationSettings(
                model=resolve_model_name(selected_model, config),
                temperature=max(0.2, config.temperature - 0.1),
                top_p=config.top_p,
                top_k=config.top_k,
                max_output_tokens=min(config.max_tokens * 2, 32768),
            )
            messages = [*(history or [])[-3:], ChatMessage(role="user", content=full_prompt)]
            content = await self.llm.generate(messages, settings)
            if not content or not content.strip():
                raise ExternalServiceError("AI generated an empty program response")
        except HypertroqError as e:
            logger.error("program_generation_failed", error=e.message)
            raise ExternalServiceError(f"Failed to generate workout program: {e.message}") from e
        except Exception as e:
            logger.exception("program_generation_failed")
            raise ExternalServiceError(f"Failed to generate workout program: {e}") from e

        citations = list(
            dict.fromkeys(chunk.title for result in results for chunk in result.chunks)
        )
        logger.info(
            "program_generated",
            model=settings.model,
            chars=len(content),
            citations=len(citations),
        )
        return ProgramGenerationResult(content=content, citations=citations)

"""Prompt construction for the coaching assistant."""

import json

from ..models.exercises import Exercise, ExerciseType
from ..models.user_profile import ClientMemory, UserProfile
from ..rag.vector_search import KnowledgeContext

PROFILE_FIELDS = [
    "name",
    "age",
    "experience_level",
    "primary_goals",
    "current_program",
    "training_frequency",
    "available_equipment",
    "time_constraints",
    "injuries",
    "medical_conditions",
    "supplementation",
    "nutrition_plan",
]

MAX_PROFILE_VALUE_LENGTH = 500

NO_PROFILE_MESSAGE = (
    "No user profile information available. "
    "Ask clarifying questions to gather relevant training information."
)
EMPTY_PROFILE_MESSAGE = "No detailed user profile available. Ask clarifying questions."
NO_EXERCISES_MESSAGE = (
    "No exercises available in the database. Please add exercises to the system first."
)
NO_KNOWLEDGE_MESSAGE = (
    "No specific information was found in the knowledge base for this query. "
    "Use your general knowledge as a fallback, but clearly state that the information "
    "is from your general training expertise and not the specific knowledge base."
)

SYSTEM_PROMPT_TEMPLATE = """
# MISSION & PERSONA
You are HypertroQ, an elite, evidence-based AI personal trainer. Your expertise is strictly confined to muscle hypertrophy, exercise science, biomechanics, and performance nutrition. Your tone is professional, expert, and concise. You address the user as your client.

# PRIMARY DIRECTIVE: KNOWLEDGE BASE GROUNDING
Your single source of truth is the provided [KNOWLEDGE] context. Your entire response MUST be derived from the principles and specific data within this context. Do not use your general knowledge unless explicitly following the Fallback Protocol.

# RESPONSE PROTOCOL

1.  **Synthesize, Don't Summarize**: Integrate information from all provided knowledge chunks to form a complete, coherent answer. Do not merely repeat sentences.
2.  **Justify Recommendations**: When creating programs or suggesting exercises, briefly justify your choices by referencing the principles (e.g., "For stability, we will use a machine-based press...") found in the [KNOWLEDGE] context. Do not cite specific document titles.
3.  **Adhere to Programming Rules**: When designing workout programs, you MUST follow all guidelines from the [KNOWLEDGE] context regarding:
    - **Rep Ranges**: (e.g., 5-10 reps for hypertrophy)
    - **Set Volumes**: (e.g., 2-4 sets per muscle group per session on a ~72h frequency split)
    - **Rest Periods**: (e.g., 2-5 minutes)
    - **Exercise Selection**: Use ONLY the exercises listed in the exercise validation section. Prioritize machines and cables.
    - **Progressive Overload**: Include the specific progression methods mentioned.
    - **Warm-up & Cool-down**: Always include protocols based on the provided guidelines.

# FALLBACK PROTOCOL
If the [KNOWLEDGE] context does not contain the information needed to answer a user's question, you must follow this sequence precisely:
1.  **Attempt to Generalize**: First, try to formulate an answer based on the foundational principles present in the context (e.g., mechanical tension, high frequency, stability).
2.  **State Limitations Clearly**: If generalization is not possible, you MUST state it clearly. Use phrases like:
    - "Based on my current knowledge base, the specific guidelines for that are not detailed. However, based on the principle of..."
    - "My training data does not cover that specific topic. From a foundational standpoint,..."
3.  **MANDATORY: Use Domain Expertise for Fitness Topics**: You MUST proceed to this step for ALL fitness-related questions. If the question is clearly within your domains of expertise (muscle hypertrophy, exercise science, biomechanics, nutrition, physiology, kinesiology, supplements, and any related fitness field), you MUST provide evidence-based general guidance while clearly stating the knowledge base limitation. DO NOT STOP at step 2 for fitness topics.
4.  **Refuse Off-Topic Queries**: You must refuse to answer any questions outside the domains of fitness, health, nutrition, and human physiology.

**CRITICAL**: For supplement questions specifically, you MUST provide recommendations based on scientific evidence while stating that your knowledge base doesn't contain specific supplement protocols. You have extensive training data on supplements and must use it.

# USER PROFILE INTEGRATION
The user's profile is in the [USER_PROFILE] tags. You MUST tailor your advice to this data, especially their experience level, goals, and injuries.

[USER_PROFILE]
{user_profile}
[/USER_PROFILE]

# EXERCISE VALIDATION (MANDATORY)
You are provided with a definitive list of approved exercises. You are forbidden from recommending any exercise not on this list.
{exercise_context}
"""

EXERCISE_RULES = [
    "ONLY recommend exercises from this list",
    "Prefer recommended exercises (marked with ⭐) when available",
    "Prefer machine and cable exercises when available",
    "Always specify the exact exercise name as listed above",
    "If an exercise isn't in this list, DO NOT recommend it",
]


def _readable_key(key: str) -> str:
    return " ".join(word.capitalize() for word in key.split("_"))


def sanitize_user_profile(profile: UserProfile | dict | None) -> str:
    """Render whitelisted profile fields as ``Readable Key: value`` lines.

    Empty values and values of 500 characters or more are dropped.
    """
    if isinstance(profile, UserProfile):
        profile = profile.to_dict()
    if not profile:
        return NO_PROFILE_MESSAGE

    lines = []
    for field_name in PROFILE_FIELDS:
        value = profile.get(field_name)
        if value is None:
            continue
        text = str(getattr(value, "value", value)).strip()
        if 0 < len(text) < MAX_PROFILE_VALUE_LENGTH:
            lines.append(f"{_readable_key(field_name)}: {text}")

    if not lines:
        return EMPTY_PROFILE_MESSAGE
    return "\n".join(lines)


def _targets(exercise: Exercise, labelled: bool) -> str:
    parts = []
    for muscle, value in exercise.volume_contributions.items():
        if value <= 0:
            continue
        if labelled:
            parts.append(f"{muscle}({'direct' if value == 1 else 'indirect'})")
        else:
            parts.append(f"{muscle}({value:g})")
    return ", ".join(parts)


def generate_exercise_context(exercises: list[Exercise]) -> str:
    """Describe the approved exercise library for the model."""
    approved = [e for e in exercises if e.is_approved]
    if not approved:
        return NO_EXERCISES_MESSAGE

    lines = [
        "VALIDATED EXERCISE DATABASE:",
        "",
        "You MUST only recommend exercises from this approved list. "
        "These exercises are specifically validated for hypertrophy training.",
        "",
    ]

    machines, cables = [], []
    for exercise in approved:
        equipment = " ".join(exercise.equipment).lower()
        if "machine" in equipment:
            machines.append(exercise)
        elif "cable" in equipment:
            cables.append(exercise)

    if machines or cables:
        lines.append("PRIORITY EXERCISES (Prefer these for hypertrophy):")
        for heading, group in (("Machine Exercises:", machines), ("Cable Exercises:", cables)):
            if group:
                lines.append(heading)
                lines.extend(f"- {e.name} → {_targets(e, labelled=False)}" for e in group)
        lines.append("")

    for exercise_type in ExerciseType:
        of_type = [e for e in approved if e.exercise_type is exercise_type]
        if not of_type:
            continue
        lines.append(f"{exercise_type.value} EXERCISES:")
        for e in of_type:
            line = f"- {e.name}"
            if e.equipment:
                line += f" ({', '.join(e.equipment)})"
            line += f" → {_targets(e, labelled=True)}"
            if e.is_recommended:
                line += " [⭐ RECOMMENDED]"
            lines.append(line)
        lines.append("")

    lines.append("IMPORTANT RULES:")
    lines.extend(f"{i}. {rule}" for i, rule in enumerate(EXERCISE_RULES, start=1))
    return "\n".join(lines) + "\n\n"


def get_system_prompt(profile: UserProfile | dict | None, exercise_context: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        user_profile=sanitize_user_profile(profile),
        exercise_context=exercise_context,
    )


def format_context_for_prompt(
    profile: UserProfile | None,
    memory: ClientMemory | None,
    knowledge: list[KnowledgeContext],
) -> str:
    """Profile, long-term memory and retrieved knowledge as tagged sections."""
    sections = []
    if profile is not None:
        sections.append(
            f"<user_profile>\n{json.dumps(profile.to_dict(), indent=2)}\n</user_profile>\n\n"
        )
    if memory is not None and not memory.is_empty:
        sections.append(
            f"<long_term_memory>\n{json.dumps(memory.to_dict(), indent=2)}\n</long_term_memory>\n\n"
        )

    if knowledge:
        body = "".join(
            f"--- Source: {chunk.title} ---\n{chunk.content}\n--- End Source ---\n\n"
            for chunk in knowledge
        )
        sections.append(f"<knowledge_base_context>\n{body}</knowledge_base_context>\n")
    else:
        sections.append(f"<knowledge_base_context>\n{NO_KNOWLEDGE_MESSAGE}\n</knowledge_base_context>\n")

    return "".join(sections)

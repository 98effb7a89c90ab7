"""Sub-query generation for multi-query retrieval.

A broad question ("how do I grow my back") is decomposed into a few
specific questions so retrieval can pull chunks about exercise selection,
volume, frequency and technique instead of whichever one topic matches the
original wording best.
"""

import json
import re

import structlog

logger = structlog.get_logger(__name__)

MAX_SUB_QUERIES = 4
MAX_QUERIES = 5

SUB_QUERY_PROMPT = """
You are an expert query analyzer for a fitness AI. Your task is to decompose a user's question into a series of more specific, self-contained questions that can be used to retrieve relevant documents from a knowledge base.

Based on the user's question below, generate up to 4 distinct questions that cover the key aspects of a comprehensive answer (like exercise selection, volume, frequency, technique, and programming).

RULES:
- Return the questions as a JSON array of strings.
- Do not number the questions.
- The questions should be phrased as if a user is asking them.
- Focus on different aspects: exercises, volume/sets/reps, frequency, technique, programming
- Keep questions concise and specific
- Avoid overly similar questions

Examples:
- User asks "how to grow my back" -> ["what are the best exercises for back growth", "what is the optimal training volume for lats", "how to program rows and pulldowns effectively", "what is the ideal frequency for back training"]
- User asks "how to train chest" -> ["what are the most effective chest exercises", "what volume and rep ranges work best for chest growth", "how often should I train chest per week", "what is proper chest exercise technique"]

User's question: "{query}"

Return only the JSON array, no other text.
"""

SPECIFIC_PATTERNS = [
    re.compile(r"what is.*exactly"),
    re.compile(r"define"),
    re.compile(r"definition of"),
    re.compile(r"how many.*in"),
    re.compile(r"when was"),
    re.compile(r"who is"),
    re.compile(r"which exercise.*specifically"),
]

BROAD_PATTERNS = [
    re.compile(r"how to train"),
    re.compile(r"how to build"),
    re.compile(r"how to grow"),
    re.compile(r"best.*for.*muscle"),
    re.compile(r"workout.*for"),
    re.compile(r"training.*program"),
    re.compile(r"muscle.*growth"),
    re.compile(r"hypertrophy"),
]


def _fallback_lines(text: str) -> list[str]:
    """Pull question or quoted lines out of a non-JSON answer."""
    queries = []
    for line in (line.strip() for line in text.splitlines()):
        if not line:
            continue
        if "?" in line or re.fullmatch(r"[\"'].*[\"']", line):
            queries.append(line.strip("\"'").strip())
    return queries[:MAX_SUB_QUERIES]


def parse_sub_queries(response_text: str) -> list[str] | None:
    """Parse the model's answer. Returns None when it is not a list."""
    cleaned = re.sub(r"```json|```", "", response_text).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("sub_query_json_invalid", response=response_text[:200])
        parsed = _fallback_lines(response_text)

    if not isinstance(parsed, list):
        logger.warning("sub_query_response_not_a_list")
        return None
    return [str(q).strip() for q in parsed if str(q).strip()]


async def generate_sub_queries(llm, query: str, model: str = "gemini-2.5-flash") -> list[str]:
    """Decompose ``query`` into at most 5 queries, the original first.

    Any generation failure yields ``[query]``.
    """
    try:
        response = await llm.generate_text(
            SUB_QUERY_PROMPT.format(query=query),
            model=model,
            temperature=0.3,
            max_output_tokens=500,
        )
    except Exception as e:
        logger.warning("sub_query_generation_failed", error=str(e))
        return [query]

    sub_queries = parse_sub_queries(response)
    if sub_queries is None:
        return [query]

    unique: list[str] = []
    for q in [query, *sub_queries]:
        if q not in unique:
            unique.append(q)
    return unique[:MAX_QUERIES]


def should_use_multi_query(query: str) -> bool:
    """Whether a query is broad enough to benefit from decomposition."""
    lowered = query.lower()
    if any(p.search(lowered) for p in SPECIFIC_PATTERNS):
        return False
    return any(p.search(lowered) for p in BROAD_PATTERNS) or len(lowered.split(" ")) <= 5

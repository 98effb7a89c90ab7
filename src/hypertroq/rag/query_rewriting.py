"""Rewriting chat queries into keyword-rich search queries."""

import asyncio
import json
import re
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)

MIN_REWRITE_LENGTH = 10

REWRITE_PROMPT = """You are a fitness and exercise expert helping to rewrite user queries for better search results.

TASK: Rewrite the user's query to be more specific and include relevant fitness keywords.

RULES:
1. Expand abbreviations and add specific terminology
2. Include relevant muscle groups, exercise types, or training concepts
3. Keep the core intent of the original query
4. Add 2-3 relevant keywords that would help find related content
5. Return ONLY a JSON object with this exact format:

{{
  "rewritten_query": "the enhanced query with specific fitness terms",
  "keywords": ["keyword1", "keyword2", "keyword3"]
}}

EXAMPLES:
User: "chest workout"
Response: {{"rewritten_query": "chest muscle hypertrophy training exercises pectoral workout routine", "keywords": ["pectoral", "push exercises", "upper body"]}}

User: "how to squat"
Response: {{"rewritten_query": "proper squat form technique leg exercise quadriceps glutes", "keywords": ["leg training", "compound movement", "lower body"]}}

FOCUS: This is for a fitness and hypertrophy training knowledge base. Emphasize:
- Muscle building and hypertrophy
- Exercise form and technique
- Training principles and programming
- Nutrition for muscle growth
- Recovery and rest

USER QUERY: "{query}"

Response (JSON only):"""


@dataclass
class QueryRewriteResult:
    original_query: str
    rewritten_query: str
    additional_keywords: list[str] = field(default_factory=list)
    success: bool = False
    error: str | None = None

    @property
    def search_query(self) -> str:
        """The query to search with: the rewrite when it succeeded."""
        return self.rewritten_query if self.success else self.original_query


def parse_rewrite_response(text: str, original_query: str) -> tuple[str, list[str]]:
    """Rewritten query and keywords from the model's JSON.

    Raises ValueError when the JSON is unusable or the rewrite is less than
    half or more than five times the original length.
    """
    cleaned = re.sub(r"```(?:json)?\s*", "", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"JSON parse error: {e}") from e

    rewritten = data.get("rewritten_query") if isinstance(data, dict) else None
    if not isinstance(rewritten, str) or not rewritten.strip():
        raise ValueError("Missing or invalid rewritten_query field")
    rewritten = rewritten.strip()

    if len(rewritten) < len(original_query) * 0.5:
        raise ValueError("Rewritten query too short")
    if len(rewritten) > len(original_query) * 5:
        raise ValueError("Rewritten query too long")

    keywords = data.get("keywords")
    if not isinstance(keywords, list):
        keywords = []
    return rewritten, [k for k in keywords if isinstance(k, str) and k.strip()]


async def rewrite_query(
    llm,
    query: str,
    model: str = "gemini-2.5-flash",
    max_retries: int = 2,
    retry_delay: float = 0.5,
) -> QueryRewriteResult:
    """Ask the LLM for a more specific search query.

    Short queries are returned as they are. When every attempt fails the
    result carries the error and ``search_query`` is the original.
    """
    cleaned = (query or "").strip()
    if not cleaned:
        return QueryRewriteResult(query, query, error="Empty query provided")
    if len(cleaned) < MIN_REWRITE_LENGTH:
        return QueryRewriteResult(cleaned, cleaned, success=True)

    error = "Query rewrite failed"
    for attempt in range(1, max_retries + 1):
        try:
            text = await llm.generate_text(
                REWRITE_PROMPT.format(query=cleaned),
                model=model,
                temperature=0.3,
                max_output_tokens=200,
            )
        except Exception as e:
            error = str(e)
            logger.warning("query_rewrite_attempt_failed", attempt=attempt, error=error)
            if attempt < max_retries and retry_delay:
                await asyncio.sleep(retry_delay * attempt)
            continue

        try:
            rewritten, keywords = parse_rewrite_response(text, cleaned)
        except ValueError as e:
            error = str(e)
            continue
        logger.debug("query_rewritten", original=cleaned, rewritten=rewritten)
        return QueryRewriteResult(cleaned, rewritten, keywords, success=True)

    logger.info("query_rewrite_skipped", error=error)
    return QueryRewriteResult(cleaned, cleaned, error=error)

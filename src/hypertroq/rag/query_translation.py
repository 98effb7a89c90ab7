"""Translation of Arabic and French queries to English before retrieval.

The knowledge base is English, so non-English questions are translated
once and cached. Anything that goes wrong leaves the query untranslated.
"""

import re

import structlog

logger = structlog.get_logger(__name__)

TRANSLATION_CACHE_MAX_SIZE = 1000

_ARABIC_CHARS = re.compile("[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]")

FRENCH_INDICATORS = frozenset(
    {
        "quel", "quelle", "comment", "pourquoi", "où", "quand", "qui", "que",
        "est-ce", "c'est", "je", "tu", "il", "elle", "nous", "vous", "ils", "elles",
        "le", "la", "les", "un", "une", "des", "du", "de", "à", "au", "aux",
        "entraînement", "exercice", "poids", "répétitions",
    }
)

TRANSLATION_PROMPT = """Translate this {language} fitness/workout query to English. Keep it concise and maintain the original meaning. Only return the English translation, nothing else:

Query: "{query}"

English translation:"""


def is_arabic_query(text: str) -> bool:
    """More than 30% of the non-space characters are Arabic script."""
    total = len(re.sub(r"\s", "", text))
    if total == 0:
        return False
    return len(_ARABIC_CHARS.findall(text)) / total > 0.3


def is_french_query(text: str) -> bool:
    """At least two distinct French indicator words.

    Words spelled the same in English (muscle, sport) are not indicators.
    """
    words = set(re.findall(r"[\w'-]+", text.lower()))
    return len(words & FRENCH_INDICATORS) >= 2


def detect_query_language(text: str) -> str:
    if is_arabic_query(text):
        return "Arabic"
    if is_french_query(text):
        return "French"
    return "English"


class QueryTranslator:
    """Translates queries with the LLM, remembering up to ``max_size`` results."""

    def __init__(self, llm, model: str = "gemini-2.5-flash", max_size: int = TRANSLATION_CACHE_MAX_SIZE):
        self.llm = llm
        self.model = model
        self.max_size = max_size
        self._cache: dict[str, str] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    async def translate_to_english(self, query: str) -> str:
        language = detect_query_language(query)
        if language == "English":
            return query
        if query in self._cache:
            return self._cache[query]

        try:
            translation = await self.llm.generate_text(
                TRANSLATION_PROMPT.format(language=language, query=query),
                model=self.model,
            )
        except Exception as e:
            logger.warning("query_translation_failed", language=language, error=str(e))
            return query

        translation = (translation or "").strip()
        if not translation:
            return query

        if len(self._cache) >= self.max_size:
            del self._cache[next(iter(self._cache))]
        self._cache[query] = translation
        logger.info("query_translated", language=language, chars=len(translation))
        return translation

"""Tests for query language detection and translation."""

import asyncio

from conftest import FakeLLM

from hypertroq.rag.query_translation import (
    QueryTranslator,
    detect_query_language,
    is_arabic_query,
    is_french_query,
)

FRENCH = "Quel est le meilleur exercice pour les pectoraux ?"
ARABIC = "ما هو أفضل تمرين للصدر"


class BrokenLLM(FakeLLM):
    async def generate_text(self, prompt, model, **kwargs):
        raise RuntimeError("quota exceeded")


class TestDetection:
    def test_arabic(self):
        assert is_arabic_query(ARABIC)
        assert not is_arabic_query("Best chest exercise? صدر")
        assert not is_arabic_query("   ")

    def test_french(self):
        assert is_french_query(FRENCH)
        assert not is_french_query("How much muscle can a beginner build?")
        assert not is_french_query("La la land squats")

    def test_language(self):
        assert detect_query_language(ARABIC) == "Arabic"
        assert detect_query_language(FRENCH) == "French"
        assert detect_query_language("Best chest exercise?") == "English"


class TestQueryTranslator:
    """Tests for QueryTranslator.translate_to_english."""

    def test_english_passes_through(self):
        llm = FakeLLM()
        translator = QueryTranslator(llm)
        assert asyncio.run(translator.translate_to_english("Best chest exercise?")) == "Best chest exercise?"
        assert llm.text_calls == []

    def test_translation_cached(self):
        llm = FakeLLM(text_replies=[" What is the best chest exercise? "])
        translator = QueryTranslator(llm, model="flash-model")

        async def run():
            return [await translator.translate_to_english(FRENCH) for _ in range(2)]

        assert asyncio.run(run()) == ["What is the best chest exercise?"] * 2
        assert len(llm.text_calls) == 1
        assert llm.text_calls[0]["model"] == "flash-model"
        assert "Translate this French" in llm.text_calls[0]["prompt"]
        assert translator.cache_size == 1

    def test_oldest_entry_evicted(self):
        llm = FakeLLM(text_replies=["Best chest exercise?", "Best chest exercise in Arabic?", "Again?"])
        translator = QueryTranslator(llm, max_size=1)

        async def run():
            await translator.translate_to_english(FRENCH)
            await translator.translate_to_english(ARABIC)
            return await translator.translate_to_english(FRENCH)

        assert asyncio.run(run()) == "Again?"
        assert translator.cache_size == 1
        assert len(llm.text_calls) == 3

    def test_failure_keeps_query(self):
        translator = QueryTranslator(BrokenLLM())
        assert asyncio.run(translator.translate_to_english(ARABIC)) == ARABIC
        assert translator.cache_size == 0

    def test_empty_translation_keeps_query(self):
        translator = QueryTranslator(FakeLLM(text_replies=["  "]))
        assert asyncio.run(translator.translate_to_english(FRENCH)) == FRENCH
        assert translator.cache_size == 0

"""Tests for workout program generation."""

import asyncio

import pytest
from conftest import FakeLLM, store_item

from hypertroq.config import AIConfiguration
from hypertroq.errors import ExternalServiceError
from hypertroq.llm.client import ChatMessage
from hypertroq.coach.program_generator import (
    CategoryResult,
    WorkoutProgramGenerator,
    create_program_designer_prompt,
    detect_program_review_intent,
    detect_workout_program_intent,
    extract_muscle_groups,
    format_program_generation_context,
    get_muscle_specific_queries,
    perform_multi_query_rag,
    resolve_model_name,
)
from hypertroq.rag.embeddings import EmbeddingService
from hypertroq.rag.vector_search import KnowledgeContext, VectorSearch


def _chunk(content, title="Source", knowledge_id=1, index=0):
    return KnowledgeContext(content, knowledge_id, title, 0.5, index)


@pytest.fixture
def search(knowledge_repo):
    return VectorSearch(knowledge_repo, EmbeddingService(FakeLLM(), batch_delay=0, retry_delay=0))


@pytest.fixture
def stored_knowledge(temp_db_path):
    store_item(temp_db_path, "Program templates", ["hypertrophy_programs upper lower split template"])
    store_item(temp_db_path, "Chest guide", ["chest chest growth"])


class TestIntentDetection:
    """Tests for program and review intent."""

    def test_program_keywords(self):
        assert detect_workout_program_intent("Can you build a program for me?")
        assert detect_workout_program_intent("I need a new Training Split")

    def test_program_patterns(self):
        assert detect_workout_program_intent("Create a 4 day workout for hypertrophy")
        assert detect_workout_program_intent("Write me a program with 3 days per week")

    def test_not_a_program(self):
        assert not detect_workout_program_intent("How many sets for biceps?")

    def test_review_keywords(self):
        assert detect_program_review_intent("Could you review my routine please")
        assert detect_program_review_intent("Here is my program, is it ok?")

    def test_review_from_structure(self):
        assert detect_program_review_intent("Squat 3x8, bench press 3x10, row 4 sets of 8")

    def test_not_a_review(self):
        assert not detect_program_review_intent("Squats 3x5")


class TestMuscleExtraction:
    def test_substring_matches(self):
        assert extract_muscle_groups("Build my chest and biceps") == ["chest", "biceps", "bicep"]

    def test_categories(self):
        assert get_muscle_specific_queries(["chest", "biceps", "bicep"]) == ["chest", "elbow_flexors"]
        assert get_muscle_specific_queries(["arms", "triceps"]) == ["elbow_flexors", "triceps", "forearms"]

    def test_unmapped_muscle_passes_through(self):
        assert get_muscle_specific_queries(["neck"]) == ["neck"]


class TestResolveModelName:
    def test_aliases(self):
        config = AIConfiguration(pro_model_name="custom-pro")
        assert resolve_model_name("flash", config) == "gemini-2.5-flash"
        assert resolve_model_name("pro", config) == "gemini-2.5-pro"
        assert resolve_model_name(None, config) == "custom-pro"
        assert resolve_model_name("other", config) == "custom-pro"

    def test_fallback(self):
        assert resolve_model_name(None, AIConfiguration(pro_model_name="")) == "gemini-2.5-pro"


class TestMultiQueryRag:
    def test_per_category_results(self, search, stored_knowledge):
        results = asyncio.run(perform_multi_query_rag("Build a program for my chest", search))
        by_query = {r.query: [c.title for c in r.chunks] for r in results}

        assert [r.query for r in results] == [
            "hypertrophy_programs",
            "chest",
            "hypertrophy_principles",
            "myths",
        ]
        assert by_query["hypertrophy_programs"] == ["Program templates"]
        assert by_query["chest"] == ["Chest guide"]
        assert by_query["myths"] == []

    def test_failed_category_search_is_empty(self, search, stored_knowledge):
        class FlakySearch:
            async def fetch_enhanced_knowledge_context(self, query, **kwargs):
                if query == "myths":
                    raise RuntimeError("database is locked")
                return await search.fetch_enhanced_knowledge_context(query, **kwargs)

        results = asyncio.run(perform_multi_query_rag("Build a program for my chest", FlakySearch()))
        by_query = {r.query: [c.title for c in r.chunks] for r in results}
        assert by_query["myths"] == []
        assert by_query["chest"] == ["Chest guide"]
        assert by_query["hypertrophy_programs"] == ["Program templates"]


class TestFormatProgramContext:
    def test_empty(self):
        assert format_program_generation_context([]) == ""

    def test_sections_in_order(self):
        results = [
            CategoryResult("myths", [_chunk("Soreness is not growth.")]),
            CategoryResult("chest", [_chunk("Press with a full stretch.")]),
            CategoryResult("back", []),
            CategoryResult("hypertrophy_programs", [_chunk("Upper/lower template.")]),
            CategoryResult("hypertrophy_principles", [_chunk("Train close to failure.")]),
        ]
        context = format_program_generation_context(results)

        assert context.startswith("[KNOWLEDGE]\n## HYPERTROPHY PROGRAM TEMPLATES\nUpper/lower template.\n---")
        assert context.endswith("[/KNOWLEDGE]")
        assert "### CHEST TRAINING" in context
        assert "### BACK TRAINING" not in context
        order = [
            context.index("## HYPERTROPHY PROGRAM TEMPLATES"),
            context.index("## MUSCLE-SPECIFIC TRAINING GUIDANCE"),
            context.index("## TRAINING PRINCIPLES"),
            context.index("## MYTHS TO AVOID"),
        ]
        assert order == sorted(order)

    def test_only_known_muscle_categories_listed(self):
        results = [
            CategoryResult("forearms", [_chunk("Grip work.")]),
            CategoryResult("neck", [_chunk("Neck curls.")]),
            CategoryResult("triceps", [_chunk("Overhead extensions.")]),
        ]
        context = format_program_generation_context(results)
        assert "### TRICEPS TRAINING\nOverhead extensions." in context
        assert "Grip work." not in context
        assert "Neck curls." not in context

    def test_no_muscle_heading_for_unlisted_categories(self):
        context = format_program_generation_context([CategoryResult("legs", [_chunk("Squat deep.")])])
        assert "MUSCLE-SPECIFIC" not in context

    def test_designer_prompt(self):
        prompt = create_program_designer_prompt("BASE", "Make me a plan", "KB", "Use 2-4 sets")
        assert prompt.startswith("<SYSTEM_PROMPT>\nBASE\n")
        assert "## HYPERTROPHY TRAINING GUIDELINES FROM ADMIN CONFIGURATION\nUse 2-4 sets" in prompt
        assert "<KNOWLEDGE>\nKB\n</KNOWLEDGE>" in prompt
        assert prompt.endswith("<USER_QUERY>\nMake me a plan\n</USER_QUERY>")

    def test_designer_prompt_without_instructions(self):
        prompt = create_program_designer_prompt("BASE", "Plan", "KB")
        assert "ADMIN CONFIGURATION" not in prompt


class TestWorkoutProgramGenerator:
    """Tests for WorkoutProgramGenerator.generate."""

    def test_generates_with_citations(self, search, stored_knowledge, sample_profile):
        llm = FakeLLM(reply="| Exercise | Notes |")
        history = [ChatMessage(role="user", content=f"old {i}") for i in range(5)]
        generator = WorkoutProgramGenerator(llm, search, "EXERCISES")

        result = asyncio.run(
            generator.generate("Build a program for my chest", AIConfiguration(), sample_profile, history)
        )

        assert result.content == "| Exercise | Notes |"
        assert result.citations == ["Program templates", "Chest guide"]

        messages, settings = llm.generate_calls[0]
        assert [m.content for m in messages[:3]] == ["old 2", "old 3", "old 4"]
        assert "<USER_QUERY>\nBuild a program for my chest\n</USER_QUERY>" in messages[-1].content
        assert "Test User" in messages[-1].content
        assert settings.model == "gemini-2.5-pro"
        assert settings.temperature == pytest.approx(0.3)
        assert settings.max_output_tokens == 16384

    def test_selected_model(self, search):
        llm = FakeLLM(reply="program")
        asyncio.run(
            WorkoutProgramGenerator(llm, search).generate(
                "5 day program", AIConfiguration(temperature=0.1), selected_model="flash"
            )
        )
        settings = llm.generate_calls[0][1]
        assert settings.model == "gemini-2.5-flash"
        assert settings.temperature == 0.2

    def test_empty_reply(self, search):
        generator = WorkoutProgramGenerator(FakeLLM(reply="  "), search)
        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(generator.generate("Create a program", AIConfiguration()))
        assert exc_info.value.message == (
            "Failed to generate workout program: AI generated an empty program response"
        )

    def test_unexpected_llm_error_wrapped(self, search):
        class BrokenLLM(FakeLLM):
            async def generate(self, messages, settings):
                raise RuntimeError("connection reset")

        generator = WorkoutProgramGenerator(BrokenLLM(), search)
        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(generator.generate("Create a program", AIConfiguration()))
        assert exc_info.value.message == "Failed to generate workout program: connection reset"

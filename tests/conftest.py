"""Pytest configuration and fixtures."""

import asyncio
import itertools
import re
import tempfile
from dataclasses import replace
from datetime import date
from pathlib import Path

import pytest

from hypertroq.config import reset_config_cache
from hypertroq.db import (
    KnowledgeRepository,
    UserRepository,
    init_db,
    seed_exercises,
    seed_programs,
)
from hypertroq.llm.client import ChatMessage, GenerationSettings
from hypertroq.models.exercises import APPROVED_EXERCISES
from hypertroq.models.knowledge import KnowledgeChunk, KnowledgeItem, KnowledgeStatus
from hypertroq.models.subscription import SubscriptionTier, User
from hypertroq.models.user_profile import ExperienceLevel, UserProfile


FAKE_DIMENSIONS = 2048
_vocabulary: dict[str, int] = {}


def fake_vector(text: str) -> list[float]:
    """Bag-of-words vector over a growing vocabulary.

    Texts sharing words get similar vectors, so similarity search behaves
    sensibly without a real embedding model.
    """
    vector = [0.0] * FAKE_DIMENSIONS
    for word in re.findall(r"\w+", text.lower()):
        index = _vocabulary.setdefault(word, len(_vocabulary)) % FAKE_DIMENSIONS
        vector[index] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeLLM:
    """Stands in for GeminiClient: canned replies and word-hash embeddings."""

    def __init__(self, reply: str = "Train hard and recover well.", text_replies=None):
        self.reply = reply
        self.text_replies = list(text_replies or [])
        self.generate_calls: list[tuple[list[ChatMessage], GenerationSettings]] = []
        self.text_calls: list[dict] = []
        self.embed_calls = 0

    async def generate(self, messages, settings):
        self.generate_calls.append((list(messages), settings))
        return self.reply

    async def generate_text(self, prompt, model, **kwargs):
        self.text_calls.append({"prompt": prompt, "model": model, **kwargs})
        if self.text_replies:
            return self.text_replies.pop(0)
        return "{}"

    async def embed(self, text, model=None):
        self.embed_calls += 1
        return fake_vector(text)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point the data directory at a temp dir and drop cached config."""
    monkeypatch.setenv("HYPERTROQ_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("HYPERTROQ_CONFIG", str(tmp_path / "missing.yaml"))
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture
def temp_db_path():
    """Create a temporary database with schema and seed data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"

        async def _setup():
            await init_db(db_path)
            await seed_exercises(db_path)
            await seed_programs(db_path)

        asyncio.run(_setup())
        yield db_path


@pytest.fixture
def fake_llm():
    return FakeLLM()


_user_numbers = itertools.count(1)


def create_user(db_path: Path, tier: SubscriptionTier = SubscriptionTier.FREE, **counters) -> int:
    """Insert a user with counters current as of today and return its id."""
    email = f"user{next(_user_numbers)}@example.com"
    counters.setdefault("daily_reset_date", date.today())
    counters.setdefault("monthly_reset_date", date.today())
    return asyncio.run(UserRepository(db_path).create(User(email=email, tier=tier, **counters)))


@pytest.fixture
def free_user_id(temp_db_path):
    return create_user(temp_db_path)


@pytest.fixture
def pro_user_id(temp_db_path):
    return create_user(temp_db_path, SubscriptionTier.PRO_MONTHLY)


@pytest.fixture
def knowledge_repo(temp_db_path):
    return KnowledgeRepository(temp_db_path)


@pytest.fixture
def sample_profile():
    """Create a sample coaching profile for testing."""
    return UserProfile(
        user_id=1,
        name="Test User",
        age=29,
        experience_level=ExperienceLevel.INTERMEDIATE,
        primary_goals="Build a bigger upper back and arms",
        training_frequency="4 days/week",
        available_equipment="Full commercial gym",
        injuries="Old left shoulder impingement",
    )


@pytest.fixture
def sample_exercises():
    """The seeded exercise library with ids assigned in seed order."""
    return [replace(exercise, id=index) for index, exercise in enumerate(APPROVED_EXERCISES, start=1)]


def store_item(
    db_path: Path,
    title: str,
    chunks: list[str],
    user_id: int | None = None,
    status: KnowledgeStatus = KnowledgeStatus.READY,
    category: str | None = None,
) -> int:
    """Insert a knowledge item with embedded chunks and return its id."""

    async def _store():
        repo = KnowledgeRepository(db_path)
        item_id = await repo.create(
            KnowledgeItem(
                title=title,
                status=status,
                content=" ".join(chunks),
                category=category,
                user_id=user_id,
            )
        )
        await repo.replace_chunks(
            item_id,
            [
                KnowledgeChunk(content=text, chunk_index=i, embedding=fake_vector(text))
                for i, text in enumerate(chunks)
            ],
        )
        return item_id

    return asyncio.run(_store())

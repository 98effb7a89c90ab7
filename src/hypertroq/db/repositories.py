"""Data access layer for hypertroq."""

import json
from datetime import date, datetime
from pathlib import Path

import aiosqlite

from ..config import AIConfiguration
from ..models.exercises import Exercise
from ..models.knowledge import (
    KnowledgeChunk,
    KnowledgeItem,
    KnowledgeSourceType,
    KnowledgeStatus,
)
from ..models.program import TrainingProgram
from ..models.subscription import SubscriptionTier, User
from ..models.user_profile import ClientMemory, UserProfile
from ..rag.embeddings import embedding_from_db_format, embedding_to_db_format
from .engine import get_db_path

USAGE_COUNTER_COLUMNS = frozenset(
    {
        "messages_used_today",
        "uploads_this_month",
        "customizations_this_month",
        "custom_programs_count",
    }
)


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


class UserRepository:
    """Repository for accounts and their usage counters."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, user: User) -> int:
        """Create a new user."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO users
                (email, tier, messages_used_today, uploads_this_month,
                 customizations_this_month, custom_programs_count,
                 daily_reset_date, monthly_reset_date)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.email,
                    user.tier.value,
                    user.messages_used_today,
                    user.uploads_this_month,
                    user.customizations_this_month,
                    user.custom_programs_count,
                    user.daily_reset_date.isoformat() if user.daily_reset_date else None,
                    user.monthly_reset_date.isoformat() if user.monthly_reset_date else None,
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, user_id: int) -> User | None:
        """Get a user by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM users WHERE email = ?", (email,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_user(row)

    async def list_all(self) -> list[User]:
        """List all users."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM users ORDER BY id")
            rows = await cursor.fetchall()
            return [self._row_to_user(row) for row in rows]

    async def increment_counter(self, user_id: int, column: str) -> None:
        """Add one to a usage counter in a single UPDATE."""
        if column not in USAGE_COUNTER_COLUMNS:
            raise ValueError(f"Unknown usage counter: {column}")

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                f"UPDATE users SET {column} = COALESCE({column}, 0) + 1 WHERE id = ?",
                (user_id,),
            )
            await db.commit()

    async def clear_counter(self, user_id: int, column: str) -> None:
        if column not in USAGE_COUNTER_COLUMNS:
            raise ValueError(f"Unknown usage counter: {column}")

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(f"UPDATE users SET {column} = 0 WHERE id = ?", (user_id,))
            await db.commit()

    async def reset_stale_counters(self, user_id: int, today: date) -> None:
        """Zero daily and monthly counters whose period has passed.

        The period check is part of each UPDATE, so a counter bumped after
        another request already rolled it over is left alone.
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE users SET messages_used_today = 0, daily_reset_date = ?
                WHERE id = ? AND (daily_reset_date IS NULL OR daily_reset_date != ?)
                """,
                (today.isoformat(), user_id, today.isoformat()),
            )
            await db.execute(
                """
                UPDATE users SET uploads_this_month = 0, customizations_this_month = 0,
                    monthly_reset_date = ?
                WHERE id = ? AND (monthly_reset_date IS NULL OR substr(monthly_reset_date, 1, 7) != ?)
                """,
                (today.isoformat(), user_id, today.strftime("%Y-%m")),
            )
            await db.commit()

    async def set_tier(self, user_id: int, tier: SubscriptionTier) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("UPDATE users SET tier = ? WHERE id = ?", (tier.value, user_id))
            await db.commit()

    def _row_to_user(self, row: aiosqlite.Row) -> User:
        """Convert a database row to a User."""
        return User(
            id=row["id"],
            email=row["email"],
            tier=SubscriptionTier(row["tier"]),
            messages_used_today=row["messages_used_today"] or 0,
            uploads_this_month=row["uploads_this_month"] or 0,
            customizations_this_month=row["customizations_this_month"] or 0,
            custom_programs_count=row["custom_programs_count"] or 0,
            daily_reset_date=_parse_date(row["daily_reset_date"]),
            monthly_reset_date=_parse_date(row["monthly_reset_date"]),
            created_at=_parse_timestamp(row["created_at"]),
        )


class UserProfileRepository:
    """Repository for coaching profiles."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get_by_user(self, user_id: int) -> UserProfile | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM user_profiles WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_profile(row)

    async def upsert(self, profile: UserProfile) -> None:
        """Create or replace the profile for ``profile.user_id``."""
        data = profile.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO user_profiles
                (user_id, name, age, experience_level, primary_goals, current_program,
                 training_frequency, available_equipment, time_constraints, injuries,
                 medical_conditions, supplementation, nutrition_plan)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    name = excluded.name,
                    age = excluded.age,
                    experience_level = excluded.experience_level,
                    primary_goals = excluded.primary_goals,
                    current_program = excluded.current_program,
                    training_frequency = excluded.training_frequency,
                    available_equipment = excluded.available_equipment,
                    time_constraints = excluded.time_constraints,
                    injuries = excluded.injuries,
                    medical_conditions = excluded.medical_conditions,
                    supplementation = excluded.supplementation,
                    nutrition_plan = excluded.nutrition_plan,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    data["user_id"],
                    data["name"],
                    data["age"],
                    data["experience_level"],
                    data["primary_goals"],
                    data["current_program"],
                    data["training_frequency"],
                    data["available_equipment"],
                    data["time_constraints"],
                    data["injuries"],
                    data["medical_conditions"],
                    data["supplementation"],
                    data["nutrition_plan"],
                ),
            )
            await db.commit()

    def _row_to_profile(self, row: aiosqlite.Row) -> UserProfile:
        """Convert a database row to a UserProfile."""
        data = {key: row[key] for key in row.keys() if key not in ("id", "updated_at")}
        return UserProfile.from_dict(
            data,
            id=row["id"],
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class ClientMemoryRepository:
    """Repository for long-term client memory."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get_or_create(self, user_id: int) -> ClientMemory:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM client_memories WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            if row is not None:
                return self._row_to_memory(row)

            now = datetime.now()
            cursor = await db.execute(
                "INSERT INTO client_memories (user_id, last_interaction) VALUES (?, ?)",
                (user_id, now.isoformat()),
            )
            await db.commit()
            return ClientMemory(user_id=user_id, last_interaction=now, id=cursor.lastrowid)

    async def save(self, memory: ClientMemory) -> None:
        """Persist all memory lists and touch ``last_interaction``."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO client_memories
                (user_id, goals, preferences, injuries, notes, last_interaction)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    goals = excluded.goals,
                    preferences = excluded.preferences,
                    injuries = excluded.injuries,
                    notes = excluded.notes,
                    last_interaction = excluded.last_interaction
                """,
                (
                    memory.user_id,
                    json.dumps(memory.goals),
                    json.dumps(memory.preferences),
                    json.dumps(memory.injuries),
                    json.dumps(memory.notes),
                    datetime.now().isoformat(),
                ),
            )
            await db.commit()

    def _row_to_memory(self, row: aiosqlite.Row) -> ClientMemory:
        return ClientMemory(
            id=row["id"],
            user_id=row["user_id"],
            goals=json.loads(row["goals"] or "[]"),
            preferences=json.loads(row["preferences"] or "[]"),
            injuries=json.loads(row["injuries"] or "[]"),
            notes=json.loads(row["notes"] or "[]"),
            last_interaction=_parse_timestamp(row["last_interaction"]),
        )


class ExerciseRepository:
    """Repository for the exercise library."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get(self, exercise_id: int) -> Exercise | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM exercises WHERE id = ?", (exercise_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_exercise(row)

    async def get_by_name(self, name: str) -> Exercise | None:
        """Get an exercise by name (case-insensitive)."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM exercises WHERE name = ? COLLATE NOCASE", (name,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_exercise(row)

    async def list_all(self) -> list[Exercise]:
        """List all exercises."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM exercises ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_exercise(row) for row in rows]

    async def list_approved(self) -> list[Exercise]:
        """Approved, active exercises ordered by type then name."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM exercises
                WHERE category = 'APPROVED' AND is_active = 1
                ORDER BY exercise_type, name
                """
            )
            rows = await cursor.fetchall()
            return [self._row_to_exercise(row) for row in rows]

    async def add(self, exercise: Exercise) -> int:
        """Add a new exercise."""
        data = exercise.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO exercises
                (name, exercise_type, primary_muscle_group, secondary_muscle_groups,
                 equipment, volume_contributions, category, is_active, is_recommended, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["name"],
                    data["exercise_type"],
                    data["primary_muscle_group"],
                    json.dumps(data["secondary_muscle_groups"]),
                    json.dumps(data["equipment"]),
                    json.dumps(data["volume_contributions"]),
                    data["category"],
                    int(data["is_active"]),
                    int(data["is_recommended"]),
                    data["description"],
                ),
            )
            await db.commit()
            return cursor.lastrowid

    def _row_to_exercise(self, row: aiosqlite.Row) -> Exercise:
        """Convert a database row to an Exercise."""
        data = {
            "name": row["name"],
            "exercise_type": row["exercise_type"],
            "primary_muscle_group": row["primary_muscle_group"],
            "secondary_muscle_groups": json.loads(row["secondary_muscle_groups"] or "[]"),
            "equipment": json.loads(row["equipment"] or "[]"),
            "volume_contributions": json.loads(row["volume_contributions"] or "{}"),
            "category": row["category"],
            "is_active": bool(row["is_active"]),
            "is_recommended": bool(row["is_recommended"]),
            "description": row["description"] or "",
        }
        return Exercise.from_dict(data, id=row["id"])


class ProgramRepository:
    """Repository for program templates."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get(self, program_id: str) -> TrainingProgram | None:
        """Get a program by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM programs WHERE id = ?", (program_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_program(row)

    async def list_all(self) -> list[TrainingProgram]:
        """List all programs."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM programs ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_program(row) for row in rows]

    async def save(self, program: TrainingProgram) -> None:
        data = program.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO programs
                (id, name, description, session_count, workout_templates)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    data["id"],
                    data["name"],
                    data["description"],
                    data["session_count"],
                    json.dumps(data["workout_templates"]),
                ),
            )
            await db.commit()

    def _row_to_program(self, row: aiosqlite.Row) -> TrainingProgram:
        """Convert a database row to a TrainingProgram."""
        return TrainingProgram.from_dict(
            {
                "id": row["id"],
                "name": row["name"],
                "description": row["description"],
                "session_count": row["session_count"],
                "workout_templates": json.loads(row["workout_templates"]),
            }
        )


class KnowledgeRepository:
    """Repository for knowledge items and their chunks."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, item: KnowledgeItem) -> int:
        """Create a knowledge item (chunks are stored separately)."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO knowledge_items
                (title, source_type, status, content, file_name, mime_type,
                 file_size, category, user_id, error_message)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.title,
                    item.source_type.value,
                    item.status.value,
                    item.content,
                    item.file_name,
                    item.mime_type,
                    item.file_size,
                    item.category,
                    item.user_id,
                    item.error_message,
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, item_id: int, include_chunks: bool = False) -> KnowledgeItem | None:
        """Get a knowledge item by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM knowledge_items WHERE id = ?", (item_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            item = self._row_to_item(row)
        if include_chunks:
            item.chunks = await self.get_chunks(item_id)
        return item

    async def list_all(self, user_id: int | None = None) -> list[KnowledgeItem]:
        """List items, newest first. With a user, their items plus shared ones."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            if user_id is not None:
                cursor = await db.execute(
                    """
                    SELECT * FROM knowledge_items
                    WHERE user_id = ? OR user_id IS NULL
                    ORDER BY created_at DESC, id DESC
                    """,
                    (user_id,),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM knowledge_items ORDER BY created_at DESC, id DESC"
                )
            rows = await cursor.fetchall()
            return [self._row_to_item(row) for row in rows]

    async def count_for_user(self, user_id: int) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM knowledge_items WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return row[0]

    async def update_status(
        self, item_id: int, status: KnowledgeStatus, error_message: str | None = None
    ) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE knowledge_items SET
                    status = ?, error_message = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (status.value, error_message, item_id),
            )
            await db.commit()

    async def update_content(self, item_id: int, content: str) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE knowledge_items SET content = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (content, item_id),
            )
            await db.commit()

    async def delete(self, item_id: int) -> bool:
        """Delete an item and its chunks. Returns False if it did not exist."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM knowledge_chunks WHERE knowledge_item_id = ?", (item_id,)
            )
            cursor = await db.execute("DELETE FROM knowledge_items WHERE id = ?", (item_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def replace_chunks(self, item_id: int, chunks: list[KnowledgeChunk]) -> None:
        """Swap an item's chunks for a new set in one transaction."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM knowledge_chunks WHERE knowledge_item_id = ?", (item_id,)
            )
            await db.executemany(
                """
                INSERT INTO knowledge_chunks
                (knowledge_item_id, chunk_index, content, start_char, end_char, embedding)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        item_id,
                        chunk.chunk_index,
                        chunk.content,
                        chunk.start_char,
                        chunk.end_char,
                        embedding_to_db_format(chunk.embedding) if chunk.embedding else None,
                    )
                    for chunk in chunks
                ],
            )
            await db.commit()

    async def get_chunks(self, item_id: int) -> list[KnowledgeChunk]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM knowledge_chunks
                WHERE knowledge_item_id = ?
                ORDER BY chunk_index
                """,
                (item_id,),
            )
            rows = await cursor.fetchall()
            return [
                KnowledgeChunk(
                    id=row["id"],
                    knowledge_item_id=row["knowledge_item_id"],
                    chunk_index=row["chunk_index"],
                    content=row["content"],
                    start_char=row["start_char"],
                    end_char=row["end_char"],
                    embedding=embedding_from_db_format(row["embedding"]) if row["embedding"] else None,
                )
                for row in rows
            ]

    async def list_ready_chunks(
        self, user_id: int | None = None, with_embeddings: bool = True
    ) -> list[dict]:
        """Chunks of READY items joined with their item title.

        Each row has ``content``, ``knowledge_id``, ``title``, ``chunk_index``
        and ``embedding`` (raw text). With a user, shared items are included.
        """
        query = """
            SELECT kc.content, kc.chunk_index, kc.embedding,
                   ki.id AS knowledge_id, ki.title
            FROM knowledge_chunks kc
            JOIN knowledge_items ki ON kc.knowledge_item_id = ki.id
            WHERE ki.status = 'READY'
        """
        params: list = []
        if with_embeddings:
            query += " AND kc.embedding IS NOT NULL"
        if user_id is not None:
            query += " AND (ki.user_id = ? OR ki.user_id IS NULL)"
            params.append(user_id)
        query += " ORDER BY ki.created_at, ki.id, kc.chunk_index"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [
                {
                    "content": row["content"],
                    "knowledge_id": row["knowledge_id"],
                    "title": row["title"],
                    "chunk_index": row["chunk_index"],
                    "embedding": row["embedding"],
                }
                for row in rows
            ]

    def _row_to_item(self, row: aiosqlite.Row) -> KnowledgeItem:
        """Convert a database row to a KnowledgeItem."""
        return KnowledgeItem(
            id=row["id"],
            title=row["title"],
            source_type=KnowledgeSourceType(row["source_type"]),
            status=KnowledgeStatus(row["status"]),
            content=row["content"] or "",
            file_name=row["file_name"],
            mime_type=row["mime_type"],
            file_size=row["file_size"],
            category=row["category"],
            user_id=row["user_id"],
            error_message=row["error_message"],
            created_at=_parse_timestamp(row["created_at"]),
        )


class AIConfigRepository:
    """Repository for the single admin AI configuration row."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get(self) -> AIConfiguration:
        """Stored configuration, or defaults when none is saved."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT data FROM ai_configuration WHERE id = 1")
            row = await cursor.fetchone()
            if row is None:
                return AIConfiguration()
            return AIConfiguration.from_dict(json.loads(row["data"]))

    async def save(self, config: AIConfiguration) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO ai_configuration (id, data) VALUES (1, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data, updated_at = CURRENT_TIMESTAMP
                """,
                (json.dumps(config.to_dict()),),
            )
            await db.commit()

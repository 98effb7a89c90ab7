"""Database engine setup and initialization."""

import json
from pathlib import Path

import aiosqlite
import structlog

from ..config import load_app_config

logger = structlog.get_logger(__name__)


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    config = load_app_config()
    if data_dir is None:
        data_dir = config.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / config.database_name


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Run database migrations for schema updates."""
    cursor = await db.execute("PRAGMA table_info(knowledge_items)")
    columns = await cursor.fetchall()
    item_columns = {col[1] for col in columns}

    if "file_size" not in item_columns:
        await db.execute("ALTER TABLE knowledge_items ADD COLUMN file_size INTEGER")
    if "updated_at" not in item_columns:
        await db.execute("ALTER TABLE knowledge_items ADD COLUMN updated_at TIMESTAMP")

    await db.commit()


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # Accounts and usage counters
        await db.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                tier TEXT NOT NULL DEFAULT 'FREE',
                messages_used_today INTEGER DEFAULT 0,
                uploads_this_month INTEGER DEFAULT 0,
                customizations_this_month INTEGER DEFAULT 0,
                custom_programs_count INTEGER DEFAULT 0,
                daily_reset_date TEXT,
                monthly_reset_date TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Coaching profile (one per user)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_profiles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL UNIQUE,
                name TEXT,
                age INTEGER,
                experience_level TEXT,
                primary_goals TEXT,
                current_program TEXT,
                training_frequency TEXT,
                available_equipment TEXT,
                time_constraints TEXT,
                injuries TEXT,
                medical_conditions TEXT,
                supplementation TEXT,
                nutrition_plan TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        # Long-term memory learned in chat
        await db.execute("""
            CREATE TABLE IF NOT EXISTS client_memories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL UNIQUE,
                goals TEXT DEFAULT '[]',
                preferences TEXT DEFAULT '[]',
                injuries TEXT DEFAULT '[]',
                notes TEXT DEFAULT '[]',
                last_interaction TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        # Validated exercise library
        await db.execute("""
            CREATE TABLE IF NOT EXISTS exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT UNIQUE NOT NULL,
                exercise_type TEXT NOT NULL,
                primary_muscle_group TEXT NOT NULL,
                secondary_muscle_groups TEXT DEFAULT '[]',
                equipment TEXT DEFAULT '[]',
                volume_contributions TEXT DEFAULT '{}',
                category TEXT DEFAULT 'APPROVED',
                is_active INTEGER DEFAULT 1,
                is_recommended INTEGER DEFAULT 0,
                description TEXT DEFAULT ''
            )
        """)

        # Program templates
        await db.execute("""
            CREATE TABLE IF NOT EXISTS programs (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                session_count INTEGER DEFAULT 1,
                workout_templates TEXT NOT NULL DEFAULT '[]'
            )
        """)

        # Knowledge base
        await db.execute("""
            CREATE TABLE IF NOT EXISTS knowledge_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                source_type TEXT NOT NULL,
                status TEXT NOT NULL,
                content TEXT DEFAULT '',
                file_name TEXT,
                mime_type TEXT,
                file_size INTEGER,
                category TEXT,
                user_id INTEGER,
                error_message TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP
            )
        """)

        # Embeddings are stored as "[a,b,c]" text
        await db.execute("""
            CREATE TABLE IF NOT EXISTS knowledge_chunks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                knowledge_item_id INTEGER NOT NULL,
                chunk_index INTEGER NOT NULL,
                content TEXT NOT NULL,
                start_char INTEGER DEFAULT 0,
                end_char INTEGER DEFAULT 0,
                embedding TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (knowledge_item_id) REFERENCES knowledge_items(id) ON DELETE CASCADE
            )
        """)

        # Single-row admin configuration
        await db.execute("""
            CREATE TABLE IF NOT EXISTS ai_configuration (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                data TEXT NOT NULL DEFAULT '{}',
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_knowledge_items_user
            ON knowledge_items(user_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_knowledge_items_status
            ON knowledge_items(status)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_knowledge_chunks_item
            ON knowledge_chunks(knowledge_item_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_exercises_name
            ON exercises(name)
        """)

        await db.commit()

        await _run_migrations(db)

    logger.debug("database_initialized", path=str(db_path))


async def seed_exercises(db_path: Path | None = None) -> int:
    """Seed the database with the approved exercise library.

    Returns:
        Number of exercises inserted (existing names are skipped)
    """
    from ..models.exercises import APPROVED_EXERCISES

    if db_path is None:
        db_path = get_db_path()

    inserted = 0
    async with aiosqlite.connect(db_path) as db:
        for exercise in APPROVED_EXERCISES:
            data = exercise.to_dict()
            cursor = await db.execute(
                """
                INSERT OR IGNORE INTO exercises
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
            inserted += cursor.rowcount
        await db.commit()

    return inserted


async def seed_programs(db_path: Path | None = None) -> int:
    """Seed the default program templates."""
    from ..models.program import DEFAULT_PROGRAMS

    if db_path is None:
        db_path = get_db_path()

    inserted = 0
    async with aiosqlite.connect(db_path) as db:
        for program in DEFAULT_PROGRAMS:
            data = program.to_dict()
            cursor = await db.execute(
                """
                INSERT OR IGNORE INTO programs
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
            inserted += cursor.rowcount
        await db.commit()

    return inserted

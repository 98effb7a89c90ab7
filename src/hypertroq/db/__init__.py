"""Database layer for hypertroq."""

from .engine import get_db_path, init_db, seed_exercises, seed_programs
from .repositories import (
    AIConfigRepository,
    ClientMemoryRepository,
    ExerciseRepository,
    KnowledgeRepository,
    ProgramRepository,
    UserProfileRepository,
    UserRepository,
)

__all__ = [
    "AIConfigRepository",
    "ClientMemoryRepository",
    "ExerciseRepository",
    "get_db_path",
    "init_db",
    "KnowledgeRepository",
    "ProgramRepository",
    "seed_exercises",
    "seed_programs",
    "UserProfileRepository",
    "UserRepository",
]

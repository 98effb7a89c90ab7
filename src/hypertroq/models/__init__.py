"""Data models for hypertroq."""

from .exercises import APPROVED_EXERCISES, Exercise, ExerciseCategory, ExerciseType, MuscleGroup
from .knowledge import KnowledgeChunk, KnowledgeItem, KnowledgeSourceType, KnowledgeStatus
from .program import (
    DEFAULT_PROGRAMS,
    EXERCISE_LIMITS,
    ProgramCategory,
    TrainingProgram,
    WorkoutTemplate,
)
from .subscription import SUBSCRIPTION_TIER_LIMITS, SubscriptionTier, User, UserPlanLimits
from .user_profile import ClientMemory, ExperienceLevel, MemoryUpdate, UserProfile

__all__ = [
    "APPROVED_EXERCISES",
    "ClientMemory",
    "DEFAULT_PROGRAMS",
    "EXERCISE_LIMITS",
    "Exercise",
    "ExerciseCategory",
    "ExerciseType",
    "ExperienceLevel",
    "KnowledgeChunk",
    "KnowledgeItem",
    "KnowledgeSourceType",
    "KnowledgeStatus",
    "MemoryUpdate",
    "MuscleGroup",
    "ProgramCategory",
    "SUBSCRIPTION_TIER_LIMITS",
    "SubscriptionTier",
    "TrainingProgram",
    "User",
    "UserPlanLimits",
    "UserProfile",
    "WorkoutTemplate",
]

"""Coaching profile and long-term client memory."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum


class ExperienceLevel(str, Enum):
    """Training experience level."""

    BEGINNER = "beginner"  # < 1 year consistent training
    INTERMEDIATE = "intermediate"  # 1-3 years
    ADVANCED = "advanced"  # 3+ years


@dataclass
class UserProfile:
    """What the coach knows about a client up front."""

    user_id: int
    name: str | None = None
    age: int | None = None
    experience_level: ExperienceLevel | None = None
    primary_goals: str | None = None
    current_program: str | None = None
    training_frequency: str | None = None  # e.g. "4 days/week"
    available_equipment: str | None = None
    time_constraints: str | None = None
    injuries: str | None = None
    medical_conditions: str | None = None
    supplementation: str | None = None
    nutrition_plan: str | None = None
    id: int | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "name": self.name,
            "age": self.age,
            "experience_level": self.experience_level.value if self.experience_level else None,
            "primary_goals": self.primary_goals,
            "current_program": self.current_program,
            "training_frequency": self.training_frequency,
            "available_equipment": self.available_equipment,
            "time_constraints": self.time_constraints,
            "injuries": self.injuries,
            "medical_conditions": self.medical_conditions,
            "supplementation": self.supplementation,
            "nutrition_plan": self.nutrition_plan,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None, updated_at: datetime | None = None) -> "UserProfile":
        """Create from dictionary."""
        level = data.get("experience_level")
        known = {f.name for f in fields(cls)} - {"id", "updated_at", "experience_level"}
        return cls(
            id=id,
            updated_at=updated_at,
            experience_level=ExperienceLevel(level) if level else None,
            **{k: v for k, v in data.items() if k in known},
        )


@dataclass
class MemoryUpdate:
    """Facts extracted from a chat turn worth remembering."""

    new_goals: list[str] = field(default_factory=list)
    new_preferences: list[str] = field(default_factory=list)
    new_injuries: list[str] = field(default_factory=list)
    other_notes: list[str] = field(default_factory=list)

    @property
    def has_new_info(self) -> bool:
        return any((self.new_goals, self.new_preferences, self.new_injuries, self.other_notes))

    @classmethod
    def from_dict(cls, data: dict) -> "MemoryUpdate":
        """Read the camelCase keys the extraction prompt asks for."""

        def _strings(key: str) -> list[str]:
            value = data.get(key) or []
            if not isinstance(value, list):
                return []
            return [str(v).strip() for v in value if str(v).strip()]

        return cls(
            new_goals=_strings("newGoals"),
            new_preferences=_strings("newPreferences"),
            new_injuries=_strings("newInjuries"),
            other_notes=_strings("otherNotes"),
        )


@dataclass
class ClientMemory:
    """Long-term facts the coach has learned in conversation."""

    user_id: int
    goals: list[str] = field(default_factory=list)
    preferences: list[str] = field(default_factory=list)
    injuries: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    last_interaction: datetime | None = None
    id: int | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.goals or self.preferences or self.injuries or self.notes)

    def apply(self, update: MemoryUpdate) -> bool:
        """Merge an update in without duplicates. Returns True if anything was added."""
        added = False
        for target, incoming in (
            (self.goals, update.new_goals),
            (self.preferences, update.new_preferences),
            (self.injuries, update.new_injuries),
            (self.notes, update.other_notes),
        ):
            seen = {item.lower() for item in target}
            for item in incoming:
                if item.lower() not in seen:
                    target.append(item)
                    seen.add(item.lower())
                    added = True
        return added

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "goals": self.goals,
            "preferences": self.preferences,
            "injuries": self.injuries,
            "notes": self.notes,
        }

"""Utilities for exercise name normalization, matching and muscle detection."""

import re
from difflib import SequenceMatcher

from ..models.exercises import APPROVED_EXERCISES, Exercise, MuscleGroup

# User vocabulary -> tracked muscle groups
MUSCLE_TERMS: dict[str, list[MuscleGroup]] = {
    "chest": [MuscleGroup.CHEST],
    "pec": [MuscleGroup.CHEST],
    "pecs": [MuscleGroup.CHEST],
    "back": [MuscleGroup.BACK],
    "lats": [MuscleGroup.BACK],
    "lat": [MuscleGroup.BACK],
    "shoulder": [MuscleGroup.SHOULDERS],
    "shoulders": [MuscleGroup.SHOULDERS],
    "delts": [MuscleGroup.SHOULDERS],
    "deltoids": [MuscleGroup.SHOULDERS],
    "bicep": [MuscleGroup.BICEPS],
    "biceps": [MuscleGroup.BICEPS],
    "tricep": [MuscleGroup.TRICEPS],
    "triceps": [MuscleGroup.TRICEPS],
    "arms": [MuscleGroup.BICEPS, MuscleGroup.TRICEPS, MuscleGroup.FOREARMS],
    "forearm": [MuscleGroup.FOREARMS],
    "forearms": [MuscleGroup.FOREARMS],
    "quad": [MuscleGroup.QUADRICEPS],
    "quads": [MuscleGroup.QUADRICEPS],
    "quadriceps": [MuscleGroup.QUADRICEPS],
    "hamstring": [MuscleGroup.HAMSTRINGS],
    "hamstrings": [MuscleGroup.HAMSTRINGS],
    "glute": [MuscleGroup.GLUTES],
    "glutes": [MuscleGroup.GLUTES],
    "calf": [MuscleGroup.CALVES],
    "calves": [MuscleGroup.CALVES],
    "abs": [MuscleGroup.ABS],
    "core": [MuscleGroup.ABS],
    "adductor": [MuscleGroup.ADDUCTORS],
    "adductors": [MuscleGroup.ADDUCTORS],
    "legs": [
        MuscleGroup.QUADRICEPS,
        MuscleGroup.HAMSTRINGS,
        MuscleGroup.GLUTES,
        MuscleGroup.CALVES,
        MuscleGroup.ADDUCTORS,
    ],
}


def normalize_exercise_name(name: str) -> str:
    """Normalize an exercise name for comparison.

    Converts to lowercase, removes extra whitespace, and standardizes common variations.
    """
    normalized = name.lower().strip()
    normalized = re.sub(r"\s+", " ", normalized)
    normalized = normalized.replace("-", " ")

    abbreviations = {
        "db": "dumbbell",
        "bb": "barbell",
        "ohp": "overhead press",
        "rdl": "romanian deadlift",
        "bss": "bulgarian split squat",
        "ext": "extension",
    }

    if normalized in abbreviations:
        return abbreviations[normalized]

    for abbrev, full in abbreviations.items():
        normalized = re.sub(rf"\b{abbrev}\b", full, normalized)

    # "curls" and "curl" compare equal
    normalized = re.sub(r"(?<=[a-rt-z])s\b", "", normalized)
    return normalized


def find_matching_exercise(
    name: str,
    exercises: list[Exercise] | None = None,
    threshold: float = 0.8,
) -> Exercise | None:
    """Find the best matching exercise from the library.

    Args:
        name: The exercise name to match
        exercises: List of exercises to search (defaults to APPROVED_EXERCISES)
        threshold: Minimum similarity ratio (0-1) to consider a match

    Returns:
        The best matching Exercise or None if no match above threshold
    """
    if exercises is None:
        exercises = APPROVED_EXERCISES

    normalized_name = normalize_exercise_name(name)

    best_match: Exercise | None = None
    best_score = 0.0

    for exercise in exercises:
        candidate = normalize_exercise_name(exercise.name)
        if candidate == normalized_name:
            return exercise

        score = SequenceMatcher(None, normalized_name, candidate).ratio()
        if score > best_score:
            best_score = score
            best_match = exercise

    if best_score >= threshold:
        return best_match

    return None


def is_exercise_approved(name: str, exercises: list[Exercise]) -> bool:
    """Case-insensitive exact check against approved, active exercises."""
    wanted = name.strip().lower()
    return any(ex.is_approved and ex.name.lower() == wanted for ex in exercises)


def find_similar_exercises(name: str, exercises: list[Exercise], limit: int = 5) -> list[Exercise]:
    """Approved exercises whose name contains ``name``, alphabetically."""
    wanted = name.strip().lower()
    matches = [ex for ex in exercises if ex.is_approved and wanted in ex.name.lower()]
    return sorted(matches, key=lambda ex: ex.name)[:limit]


def get_exercises_by_muscle_group(muscle: MuscleGroup | str, exercises: list[Exercise]) -> list[Exercise]:
    """Approved exercises with a volume contribution to ``muscle``."""
    key = (muscle.value if isinstance(muscle, MuscleGroup) else str(muscle)).upper()
    return sorted(
        (
            ex
            for ex in exercises
            if ex.is_approved and any(m.upper() == key for m in ex.volume_contributions)
        ),
        key=lambda ex: ex.name,
    )


def extract_mentioned_muscles(text: str) -> list[MuscleGroup]:
    """Muscle groups named in free text, in order of first mention."""
    found: list[MuscleGroup] = []
    for word in re.findall(r"[a-z]+", text.lower()):
        for muscle in MUSCLE_TERMS.get(word, []):
            if muscle not in found:
                found.append(muscle)
    return found


def muscle_search_terms(muscle: MuscleGroup) -> list[str]:
    """Words that indicate a chunk talks about ``muscle``."""
    terms = [word for word, muscles in MUSCLE_TERMS.items() if muscles == [muscle]]
    return terms or [muscle.value.lower()]

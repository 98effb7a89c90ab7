"""Set volume distribution and program volume analysis."""

from .analysis import ProgramBuilder, VolumeLoad, classify_volume_load
from .set_distribution import (
    SessionExercise,
    SetVolumeDistribution,
    calculate_set_volume_distribution,
    format_workout_table,
)

__all__ = [
    "ProgramBuilder",
    "SessionExercise",
    "SetVolumeDistribution",
    "VolumeLoad",
    "calculate_set_volume_distribution",
    "classify_volume_load",
    "format_workout_table",
]

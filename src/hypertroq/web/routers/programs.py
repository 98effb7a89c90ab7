"""Training program routes: templates, volume analysis and generation."""

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, Field

from ...coach.chat import CoachChatService
from ...db.repositories import ExerciseRepository, ProgramRepository
from ...errors import NotFoundError, ValidationError
from ...llm.client import ChatMessage
from ...models.program import ProgramCategory
from ...volume.analysis import ProgramBuilder
from ...volume.set_distribution import (
    SessionExercise,
    calculate_set_volume_distribution,
    format_workout_table,
)
from ..deps import get_db_path, get_llm, get_retriever, get_tier_service, require_user_id

router = APIRouter(prefix="/programs", tags=["programs"])


class VolumeRequest(BaseModel):
    category: ProgramCategory = ProgramCategory.ESSENTIALIST
    # workout template id -> exercise ids (or names)
    configuration: dict[str, list[int | str]] = Field(default_factory=dict)


class SessionExerciseIn(BaseModel):
    name: str
    muscle_group: str
    is_compound: bool = False


class DistributeRequest(BaseModel):
    exercises: list[SessionExerciseIn]
    training_frequency: str = "72h"
    session_type: str = "upper"


class GenerateRequest(BaseModel):
    prompt: str
    model: str | None = None
    history: list[dict] = Field(default_factory=list)


@router.get("")
async def list_programs(request: Request):
    programs = await ProgramRepository(get_db_path(request)).list_all()
    return {"programs": [p.to_dict() for p in programs]}


@router.post("/distribute")
async def distribute_sets(body: DistributeRequest):
    """Allocate sets across a session's exercises and render the table."""
    if not body.exercises:
        raise ValidationError("At least one exercise is required")
    distribution = calculate_set_volume_distribution(
        [SessionExercise(e.name, e.muscle_group, e.is_compound) for e in body.exercises],
        training_frequency=body.training_frequency,
        session_type=body.session_type,
    )
    return {**distribution.to_dict(), "table": format_workout_table(distribution)}


@router.post("/generate")
async def generate_program(
    request: Request, body: GenerateRequest, x_user_id: int | None = Header(default=None)
):
    """Generate a workout program grounded in the knowledge base."""
    user_id = require_user_id(x_user_id)
    service = CoachChatService(
        get_llm(request),
        get_retriever(request),
        db_path=get_db_path(request),
        tier_service=get_tier_service(request),
    )
    result = await service.generate_program(
        user_id, body.prompt, [ChatMessage.from_dict(m) for m in body.history], body.model
    )
    return result.to_dict()


@router.get("/{program_id}")
async def get_program(request: Request, program_id: str):
    program = await ProgramRepository(get_db_path(request)).get(program_id)
    if program is None:
        raise NotFoundError("Program", program_id)
    return program.to_dict()


@router.post("/{program_id}/volume")
async def analyze_volume(request: Request, program_id: str, body: VolumeRequest):
    """Per-workout and weekly volume for a selection of exercises."""
    db_path = get_db_path(request)
    program = await ProgramRepository(db_path).get(program_id)
    if program is None:
        raise NotFoundError("Program", program_id)

    unknown = [tid for tid in body.configuration if program.get_template(tid) is None]
    if unknown:
        raise ValidationError(f"Unknown workout templates: {', '.join(unknown)}")

    exercises = await ExerciseRepository(db_path).list_approved()
    builder = ProgramBuilder(program, exercises, body.category, body.configuration)

    return {
        "program_id": program.id,
        "category": builder.selected_category.value,
        "workouts": [
            {
                **builder.get_workout_volume(t.id).to_dict(),
                "is_valid": builder.is_workout_valid(t.id),
                "selected_count": builder.get_total_selected_count(t.id),
            }
            for t in program.workout_templates
        ],
        "weekly": builder.get_weekly_volume_analysis().to_dict(),
        "missing_muscle_groups": [m.to_dict() for m in builder.get_missing_muscle_groups()],
    }

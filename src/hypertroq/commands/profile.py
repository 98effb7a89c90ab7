"""Coaching profile commands."""

import click
import questionary
from questionary import Style

from ..coach.prompts import sanitize_user_profile
from ..db import ClientMemoryRepository, UserProfileRepository, UserRepository, get_db_path
from ..models.user_profile import ExperienceLevel, UserProfile
from .base import async_command, echo_error, echo_info, echo_success, ensure_initialized

custom_style = Style(
    [
        ("qmark", "fg:#673ab7 bold"),
        ("question", "bold"),
        ("answer", "fg:#f44336 bold"),
        ("pointer", "fg:#673ab7 bold"),
        ("highlighted", "fg:#673ab7 bold"),
        ("selected", "fg:#cc5454"),
        ("instruction", ""),
        ("text", ""),
    ]
)

# (field, question) for the free-text profile fields
TEXT_QUESTIONS = [
    ("primary_goals", "What are your primary goals?"),
    ("current_program", "What program are you running now? (optional)"),
    ("training_frequency", "How often do you train? (e.g. 4 days/week)"),
    ("available_equipment", "What equipment do you have access to?"),
    ("time_constraints", "Any time constraints per session? (optional)"),
    ("injuries", "Any injuries or limitations? (optional)"),
    ("medical_conditions", "Any medical conditions the coach should know about? (optional)"),
    ("supplementation", "Current supplementation? (optional)"),
    ("nutrition_plan", "Describe your nutrition plan (optional)"),
]


async def collect_profile(user_id: int, existing: UserProfile | None = None) -> UserProfile | None:
    """Ask the profile questions, defaulting to the stored answers.

    Returns None if the questionnaire is cancelled.
    """
    current = existing.to_dict() if existing else {}

    name = await questionary.text(
        "What's your name?", default=current.get("name") or "", style=custom_style
    ).ask_async()
    if name is None:
        return None

    age_str = await questionary.text(
        "Your age (optional):",
        default=str(current["age"]) if current.get("age") else "",
        validate=lambda v: not v or v.isdigit() or "Enter a whole number",
        style=custom_style,
    ).ask_async()
    if age_str is None:
        return None

    experience = await questionary.select(
        "What's your training experience level?",
        choices=[
            questionary.Choice("Beginner (less than 1 year)", ExperienceLevel.BEGINNER),
            questionary.Choice("Intermediate (1-3 years)", ExperienceLevel.INTERMEDIATE),
            questionary.Choice("Advanced (3+ years)", ExperienceLevel.ADVANCED),
        ],
        default=existing.experience_level if existing else None,
        style=custom_style,
    ).ask_async()
    if experience is None:
        return None

    answers = {}
    for field_name, question in TEXT_QUESTIONS:
        answer = await questionary.text(
            question, default=current.get(field_name) or "", style=custom_style
        ).ask_async()
        if answer is None:
            return None
        answers[field_name] = answer.strip() or None

    return UserProfile(
        user_id=user_id,
        name=name.strip() or None,
        age=int(age_str) if age_str else None,
        experience_level=experience,
        **answers,
    )


@click.command()
@click.argument("user_id", type=int)
@click.option("--show", is_flag=True, help="Print the stored profile and memory instead of editing")
@click.pass_context
@async_command
async def profile(ctx, user_id: int, show: bool):
    """Fill in or view the coaching profile for USER_ID."""
    ensure_initialized(ctx)
    db_path = get_db_path()

    if await UserRepository(db_path).get(user_id) is None:
        echo_error(f"User {user_id} not found. Create one with 'hypertroq users create'")
        ctx.exit(1)

    profiles = UserProfileRepository(db_path)
    existing = await profiles.get_by_user(user_id)

    if show:
        click.echo()
        click.echo(sanitize_user_profile(existing))
        memory = await ClientMemoryRepository(db_path).get_or_create(user_id)
        if not memory.is_empty:
            click.echo()
            click.echo(click.style("Coaching memory", bold=True))
            for label, entries in (
                ("Goals", memory.goals),
                ("Preferences", memory.preferences),
                ("Injuries", memory.injuries),
                ("Notes", memory.notes),
            ):
                for entry in entries:
                    click.echo(f"  {label}: {entry}")
        return

    click.echo("\n=== Coaching Profile ===\n")
    collected = await collect_profile(user_id, existing)
    if collected is None:
        echo_info("Cancelled, profile unchanged")
        return

    await profiles.upsert(collected)
    echo_success(f"Profile saved for user {user_id}")

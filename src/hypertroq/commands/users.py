"""User and subscription commands."""

import click

from ..db import UserRepository, get_db_path
from ..models.subscription import SubscriptionTier, User
from ..services.tier_limits import LimitType, TierService, format_limit, get_tier_display_name
from .base import async_command, echo_error, echo_info, echo_success, ensure_initialized, format_table


@click.group()
@click.pass_context
def users(ctx):
    """Manage users and subscription tiers."""
    ensure_initialized(ctx)


@users.command()
@click.argument("email")
@click.option(
    "--tier",
    type=click.Choice([t.value for t in SubscriptionTier]),
    default=SubscriptionTier.FREE.value,
    help="Subscription tier (default: FREE)",
)
@click.pass_context
@async_command
async def create(ctx, email: str, tier: str):
    """Create a user."""
    repo = UserRepository(get_db_path())
    if await repo.get_by_email(email):
        echo_error(f"A user with email {email} already exists")
        ctx.exit(1)

    user_id = await repo.create(User(email=email, tier=SubscriptionTier(tier)))
    echo_success(f"Created user {user_id} ({email}, {get_tier_display_name(SubscriptionTier(tier))})")


@users.command(name="list")
@async_command
async def list_users():
    """List all users."""
    all_users = await UserRepository(get_db_path()).list_all()

    if not all_users:
        echo_info("No users found. Create one with 'hypertroq users create'")
        return

    headers = ["ID", "Email", "Tier", "Messages today", "Uploads this month"]
    rows = [
        [
            str(u.id),
            u.email,
            u.tier.value,
            str(u.messages_used_today),
            str(u.uploads_this_month),
        ]
        for u in all_users
    ]
    click.echo()
    click.echo(format_table(headers, rows))
    click.echo()
    click.echo(f"Total: {len(all_users)} user(s)")


@users.command(name="set-tier")
@click.argument("user_id", type=int)
@click.argument("tier", type=click.Choice([t.value for t in SubscriptionTier]))
@click.pass_context
@async_command
async def set_tier(ctx, user_id: int, tier: str):
    """Move USER_ID to TIER."""
    db_path = get_db_path()
    if await UserRepository(db_path).get(user_id) is None:
        echo_error(f"User {user_id} not found")
        ctx.exit(1)

    service = TierService(db_path)
    target = SubscriptionTier(tier)
    if target.is_pro:
        await service.upgrade_user(user_id, target)
    else:
        await service.downgrade_user(user_id)
    echo_success(f"User {user_id} is now on {get_tier_display_name(target)}")


@users.command()
@click.argument("user_id", type=int)
@click.pass_context
@async_command
async def usage(ctx, user_id: int):
    """Show plan limits and current usage for USER_ID."""
    service = TierService(get_db_path())
    summary = await service.usage_summary(user_id)
    if summary is None:
        echo_error(f"User {user_id} not found")
        ctx.exit(1)

    click.echo()
    click.echo(f"User {user_id}: {summary['tier_name']}")
    click.echo()

    rows = []
    for limit_type in LimitType:
        check = await service.enforce_limit(user_id, limit_type)
        rows.append(
            [
                limit_type.value,
                str(check.current),
                format_limit(check.limit),
                "yes" if check.allowed else "no",
                check.reset_date.strftime("%Y-%m-%d") if check.reset_date else "-",
            ]
        )
    click.echo(format_table(["Limit", "Used", "Allowed", "Can use", "Resets"], rows))

"""Subscription tier and usage routes."""

from fastapi import APIRouter, Request

from ...errors import NotFoundError, ValidationError
from ...services.tier_limits import FeatureName, LimitType, get_upgrade_url
from ..deps import get_tier_service

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("/{user_id}")
async def get_subscription(request: Request, user_id: int):
    """Tier, plan limits, current usage and limit checks for a user."""
    tiers = get_tier_service(request)
    summary = await tiers.usage_summary(user_id)
    if summary is None:
        raise NotFoundError("User", user_id)
    summary["limit_checks"] = {
        limit_type.value: (await tiers.enforce_limit(user_id, limit_type)).to_dict()
        for limit_type in LimitType
    }
    return summary


@router.get("/{user_id}/features/{feature}")
async def check_feature(request: Request, user_id: int, feature: str):
    if feature not in {f.value for f in FeatureName}:
        raise ValidationError(f"Unknown feature: {feature}")
    result = await get_tier_service(request).check_feature_access(user_id, feature)
    data = result.to_dict()
    if result.upgrade_path is not None:
        data["upgrade_url"] = get_upgrade_url(result.upgrade_path)
    return data

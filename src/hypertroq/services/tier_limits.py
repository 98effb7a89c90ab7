"""Subscription tier feature gating and usage limits.

Tiers are cached per user for a short TTL; usage counters are always read
fresh. Counters roll over lazily: whenever a user is loaded here, daily and
monthly counters whose period has passed are zeroed and saved.
"""

import math
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path

import structlog

from ..config import load_app_config
from ..db.repositories import KnowledgeRepository, UserRepository
from ..errors import ValidationError
from ..models.subscription import (
    SUBSCRIPTION_TIER_LIMITS,
    UNLIMITED,
    SubscriptionTier,
    User,
    UserPlanLimits,
)

logger = structlog.get_logger(__name__)

MAX_CACHE_ENTRIES = 1000


class FeatureName(str, Enum):
    CREATE_PROGRAM = "create_program"
    CUSTOMIZE_PROGRAM = "customize_program"
    AI_ASSISTANT = "ai_assistant"
    WORKOUT_TEMPLATES = "workout_templates"
    ADVANCED_ANALYTICS = "advanced_analytics"
    EXPORT_PDF = "export_pdf"
    PRIORITY_SUPPORT = "priority_support"
    CONVERSATION_MEMORY = "conversation_memory"
    ADVANCED_RAG = "advanced_rag"


class LimitType(str, Enum):
    PROGRAMS = "programs"
    CUSTOMIZATIONS = "customizations"
    AI_INTERACTIONS = "ai_interactions"
    UPLOADS = "uploads"
    KNOWLEDGE_ITEMS = "knowledge_items"


USAGE_COUNTERS = {
    LimitType.PROGRAMS: "custom_programs_count",
    LimitType.CUSTOMIZATIONS: "customizations_this_month",
    LimitType.AI_INTERACTIONS: "messages_used_today",
    LimitType.UPLOADS: "uploads_this_month",
}

_ALL_TIERS = frozenset(SubscriptionTier)
_PRO_TIERS = frozenset({SubscriptionTier.PRO_MONTHLY, SubscriptionTier.PRO_YEARLY})
_YEARLY_ONLY = frozenset({SubscriptionTier.PRO_YEARLY})

FEATURE_TIERS: dict[FeatureName, frozenset[SubscriptionTier]] = {
    FeatureName.CREATE_PROGRAM: _ALL_TIERS,
    FeatureName.CUSTOMIZE_PROGRAM: _ALL_TIERS,
    FeatureName.AI_ASSISTANT: _ALL_TIERS,
    FeatureName.WORKOUT_TEMPLATES: _PRO_TIERS,
    FeatureName.ADVANCED_ANALYTICS: _PRO_TIERS,
    FeatureName.CONVERSATION_MEMORY: _PRO_TIERS,
    FeatureName.ADVANCED_RAG: _PRO_TIERS,
    FeatureName.EXPORT_PDF: _YEARLY_ONLY,
    FeatureName.PRIORITY_SUPPORT: _YEARLY_ONLY,
}

FEATURE_DENIAL_REASONS = {
    FeatureName.WORKOUT_TEMPLATES: "Workout templates are available on Pro plans",
    FeatureName.ADVANCED_ANALYTICS: "Advanced analytics are available on Pro plans",
    FeatureName.EXPORT_PDF: "PDF export is available on Pro Yearly plan",
    FeatureName.PRIORITY_SUPPORT: "Priority support is available on Pro Yearly plan",
    FeatureName.CONVERSATION_MEMORY: "Conversation memory is available on Pro plans",
    FeatureName.ADVANCED_RAG: "Advanced AI features are available on Pro plans",
}


@dataclass
class FeatureAccessResult:
    has_access: bool
    reason: str | None = None
    tier: SubscriptionTier | None = None
    upgrade_path: SubscriptionTier | None = None

    def to_dict(self) -> dict:
        return {
            "has_access": self.has_access,
            "reason": self.reason,
            "tier": self.tier.value if self.tier else None,
            "upgrade_path": self.upgrade_path.value if self.upgrade_path else None,
        }


@dataclass
class LimitCheckResult:
    allowed: bool
    current: int
    limit: int
    remaining: float
    reset_date: datetime | None = None
    tier: SubscriptionTier | None = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "current": self.current,
            "limit": self.limit,
            "remaining": None if math.isinf(self.remaining) else int(self.remaining),
            "reset_date": self.reset_date.isoformat() if self.reset_date else None,
            "tier": self.tier.value if self.tier else None,
        }


def _next_day(today: date) -> datetime:
    return datetime.combine(today + timedelta(days=1), datetime.min.time())


def _first_of_next_month(today: date) -> datetime:
    if today.month == 12:
        return datetime(today.year + 1, 1, 1)
    return datetime(today.year, today.month + 1, 1)


def get_tier_display_name(tier: SubscriptionTier) -> str:
    return {
        SubscriptionTier.FREE: "Free",
        SubscriptionTier.PRO_MONTHLY: "Pro Monthly",
        SubscriptionTier.PRO_YEARLY: "Pro Yearly",
    }.get(tier, "Unknown")


def get_upgrade_url(target_tier: SubscriptionTier) -> str:
    if target_tier is SubscriptionTier.FREE:
        return "/pricing"
    return f"/pricing?plan={target_tier.value.lower()}"


def format_limit(limit: int) -> str:
    return "Unlimited" if limit == UNLIMITED else str(limit)


def get_tier_limits(tier: SubscriptionTier) -> UserPlanLimits:
    return SUBSCRIPTION_TIER_LIMITS[tier]


class TierService:
    """Feature access checks and usage limit enforcement for users."""

    def __init__(self, db_path: Path | None = None, cache_ttl: float | None = None):
        self.users = UserRepository(db_path)
        self.knowledge = KnowledgeRepository(db_path)
        if cache_ttl is None:
            cache_ttl = load_app_config().tier_cache_ttl
        self.cache_ttl = cache_ttl
        self._tier_cache: dict[int, tuple[SubscriptionTier, float]] = {}

    # Cache management

    def _get_cached_tier(self, user_id: int) -> SubscriptionTier | None:
        cached = self._tier_cache.get(user_id)
        if cached is None:
            return None
        tier, stored_at = cached
        if time.monotonic() - stored_at > self.cache_ttl:
            del self._tier_cache[user_id]
            return None
        return tier

    def _set_cached_tier(self, user_id: int, tier: SubscriptionTier) -> None:
        self._tier_cache.pop(user_id, None)
        self._tier_cache[user_id] = (tier, time.monotonic())
        if len(self._tier_cache) > MAX_CACHE_ENTRIES:
            oldest = next(iter(self._tier_cache))
            del self._tier_cache[oldest]

    def clear_tier_cache(self, user_id: int) -> None:
        self._tier_cache.pop(user_id, None)

    def clear_all_tier_cache(self) -> None:
        self._tier_cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._tier_cache)

    # Lookups

    async def _fresh_user(self, user_id: int) -> User | None:
        user = await self.users.get(user_id)
        if user is not None and user.reset_stale_counters(date.today()):
            await self.users.reset_stale_counters(user_id, date.today())
            logger.debug("usage_counters_reset", user_id=user_id)
        return user

    async def load_user(self, user_id: int) -> User | None:
        """Fetch a user with stale counters rolled over and the tier cached."""
        user = await self._fresh_user(user_id)
        if user is None:
            return None

        cached_tier = self._get_cached_tier(user_id)
        if cached_tier is not None:
            user.tier = cached_tier
        else:
            self._set_cached_tier(user_id, user.tier)
        return user

    async def check_feature_access(
        self, user_id: int, feature: FeatureName | str
    ) -> FeatureAccessResult:
        user = await self.load_user(user_id)
        if user is None:
            return FeatureAccessResult(
                has_access=False, reason="User subscription information not found"
            )

        try:
            feature = FeatureName(feature)
        except ValueError:
            return FeatureAccessResult(has_access=False, reason=f"Unknown feature: {feature}")

        if user.tier in FEATURE_TIERS[feature]:
            return FeatureAccessResult(has_access=True, tier=user.tier)

        upgrade_path = (
            SubscriptionTier.PRO_MONTHLY
            if user.tier is SubscriptionTier.FREE
            else SubscriptionTier.PRO_YEARLY
        )
        reason = FEATURE_DENIAL_REASONS.get(
            feature,
            f"This feature requires a {upgrade_path.value.replace('_', ' ', 1)} subscription",
        )
        return FeatureAccessResult(
            has_access=False, reason=reason, tier=user.tier, upgrade_path=upgrade_path
        )

    async def enforce_limit(self, user_id: int, limit_type: LimitType | str) -> LimitCheckResult:
        """Current usage against the tier limit. Does not increment."""
        user = await self.load_user(user_id)
        if user is None:
            return LimitCheckResult(
                allowed=False, current=0, limit=0, remaining=0, tier=SubscriptionTier.FREE
            )

        limits = user.limits
        today = date.today()
        limit_type = LimitType(limit_type)
        reset_date = None

        if limit_type is LimitType.PROGRAMS:
            current, limit = user.custom_programs_count, limits.custom_programs
        elif limit_type is LimitType.CUSTOMIZATIONS:
            current, limit = user.customizations_this_month, limits.customizations_per_month
            reset_date = _first_of_next_month(today)
        elif limit_type is LimitType.AI_INTERACTIONS:
            current, limit = user.messages_used_today, limits.daily_messages
            reset_date = _next_day(today)
        elif limit_type is LimitType.UPLOADS:
            current, limit = user.uploads_this_month, limits.monthly_uploads
            reset_date = _first_of_next_month(today)
        else:
            current = await self.knowledge.count_for_user(user_id)
            limit = limits.max_knowledge_items

        allowed = limit == UNLIMITED or current < limit
        remaining = math.inf if limit == UNLIMITED else max(0, limit - current)
        return LimitCheckResult(
            allowed=allowed,
            current=current,
            limit=limit,
            remaining=remaining,
            reset_date=reset_date,
            tier=user.tier,
        )

    async def increment_usage(self, user_id: int, limit_type: LimitType | str) -> bool:
        """Count one use. Returns False for unknown users."""
        user = await self._fresh_user(user_id)
        if user is None:
            return False

        limit_type = LimitType(limit_type)
        # Knowledge items are counted from the table itself.
        if column := USAGE_COUNTERS.get(limit_type):
            await self.users.increment_counter(user_id, column)
        self.clear_tier_cache(user_id)
        return True

    async def usage_summary(self, user_id: int) -> dict | None:
        """Tier, limits and current usage for display."""
        user = await self.load_user(user_id)
        if user is None:
            return None
        return {
            "user_id": user_id,
            "tier": user.tier.value,
            "tier_name": get_tier_display_name(user.tier),
            "limits": user.limits.to_dict(),
            "usage": {
                "messages_used_today": user.messages_used_today,
                "uploads_this_month": user.uploads_this_month,
                "customizations_this_month": user.customizations_this_month,
                "custom_programs_count": user.custom_programs_count,
                "knowledge_items": await self.knowledge.count_for_user(user_id),
            },
        }

    async def upgrade_user(self, user_id: int, tier: SubscriptionTier) -> None:
        if not tier.is_pro:
            raise ValidationError("Upgrade target must be a Pro tier")
        await self.users.set_tier(user_id, tier)
        self.clear_tier_cache(user_id)
        logger.info("user_upgraded", user_id=user_id, tier=tier.value)

    async def downgrade_user(self, user_id: int) -> None:
        """Move a user to FREE and reset today's message count."""
        if await self.users.get(user_id) is None:
            return
        await self.users.set_tier(user_id, SubscriptionTier.FREE)
        await self.users.clear_counter(user_id, "messages_used_today")
        self.clear_tier_cache(user_id)
        logger.info("user_downgraded", user_id=user_id)

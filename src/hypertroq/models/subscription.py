"""Subscription tiers, plan limits and users."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

UNLIMITED = -1


class SubscriptionTier(str, Enum):
    FREE = "FREE"
    PRO_MONTHLY = "PRO_MONTHLY"
    PRO_YEARLY = "PRO_YEARLY"

    @property
    def is_pro(self) -> bool:
        return self is not SubscriptionTier.FREE


@dataclass(frozen=True)
class UserPlanLimits:
    """What a tier is allowed to do. -1 means unlimited."""

    daily_messages: int
    monthly_uploads: int
    max_file_size: int  # MB
    has_conversation_memory: bool
    can_access_pro_features: bool
    can_access_advanced_rag: bool
    max_knowledge_items: int
    custom_programs: int
    customizations_per_month: int
    can_export_pdf: bool
    has_priority_support: bool

    def to_dict(self) -> dict:
        return {
            "daily_messages": self.daily_messages,
            "monthly_uploads": self.monthly_uploads,
            "max_file_size": self.max_file_size,
            "has_conversation_memory": self.has_conversation_memory,
            "can_access_pro_features": self.can_access_pro_features,
            "can_access_advanced_rag": self.can_access_advanced_rag,
            "max_knowledge_items": self.max_knowledge_items,
            "custom_programs": self.custom_programs,
            "customizations_per_month": self.customizations_per_month,
            "can_export_pdf": self.can_export_pdf,
            "has_priority_support": self.has_priority_support,
        }


_PRO_LIMITS = dict(
    daily_messages=UNLIMITED,
    monthly_uploads=UNLIMITED,
    max_file_size=100,
    has_conversation_memory=True,
    can_access_pro_features=True,
    can_access_advanced_rag=True,
    max_knowledge_items=UNLIMITED,
    custom_programs=UNLIMITED,
    customizations_per_month=UNLIMITED,
)

SUBSCRIPTION_TIER_LIMITS: dict[SubscriptionTier, UserPlanLimits] = {
    SubscriptionTier.FREE: UserPlanLimits(
        daily_messages=10,
        monthly_uploads=5,
        max_file_size=10,
        has_conversation_memory=False,
        can_access_pro_features=False,
        can_access_advanced_rag=False,
        max_knowledge_items=10,
        custom_programs=2,
        customizations_per_month=5,
        can_export_pdf=False,
        has_priority_support=False,
    ),
    SubscriptionTier.PRO_MONTHLY: UserPlanLimits(
        **_PRO_LIMITS, can_export_pdf=False, has_priority_support=False
    ),
    SubscriptionTier.PRO_YEARLY: UserPlanLimits(
        **_PRO_LIMITS, can_export_pdf=True, has_priority_support=True
    ),
}


@dataclass
class User:
    """An account with its tier and usage counters."""

    email: str
    tier: SubscriptionTier = SubscriptionTier.FREE
    messages_used_today: int = 0
    uploads_this_month: int = 0
    customizations_this_month: int = 0
    custom_programs_count: int = 0
    daily_reset_date: date | None = None
    monthly_reset_date: date | None = None
    id: int | None = None
    created_at: datetime | None = None

    @property
    def limits(self) -> UserPlanLimits:
        return SUBSCRIPTION_TIER_LIMITS[self.tier]

    def reset_stale_counters(self, today: date) -> bool:
        """Zero counters whose period has rolled over. Returns True if anything changed."""
        changed = False
        if self.daily_reset_date != today:
            self.messages_used_today = 0
            self.daily_reset_date = today
            changed = True
        if self.monthly_reset_date is None or (
            (self.monthly_reset_date.year, self.monthly_reset_date.month)
            != (today.year, today.month)
        ):
            self.uploads_this_month = 0
            self.customizations_this_month = 0
            self.monthly_reset_date = today
            changed = True
        return changed

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "tier": self.tier.value,
            "messages_used_today": self.messages_used_today,
            "uploads_this_month": self.uploads_this_month,
            "customizations_this_month": self.customizations_this_month,
            "custom_programs_count": self.custom_programs_count,
            "daily_reset_date": self.daily_reset_date.isoformat() if self.daily_reset_date else None,
            "monthly_reset_date": (
                self.monthly_reset_date.isoformat() if self.monthly_reset_date else None
            ),
        }

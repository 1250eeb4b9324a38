"""User profile data model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.models.listing import utcnow


class SubscriptionTier(str, Enum):
    FREE = "free"
    POSTER = "poster"
    PREMIUM = "premium"


@dataclass
class UserProfile:
    """Marketplace profile created at signup."""

    id: str
    email: str
    name: str
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "subscriptionTier": self.subscription_tier.value,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        created_at = data.get("createdAt")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = utcnow()

        return cls(
            id=data["id"],
            email=data["email"],
            name=data.get("name", ""),
            subscription_tier=SubscriptionTier(data.get("subscriptionTier", "free")),
            created_at=created_at,
        )

"""Signup, profile lookup and subscription tier changes."""

import logging

from src.auth.identity import IdentityProvider
from src.config.settings import Settings
from src.errors import NotFound, ValidationError
from src.models.profile import SubscriptionTier, UserProfile
from src.repository.entities import EntityRepository

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, repository: EntityRepository, identity: IdentityProvider, settings: Settings):
        self.repository = repository
        self.identity = identity
        self.settings = settings

    async def signup(self, email: str, password: str, name: str) -> tuple[dict, UserProfile]:
        """Create the auth identity and the marketplace profile.

        Returns the provider's user record and the stored profile.
        """
        email = (email or "").strip()
        if not email.lower().endswith(self.settings.email_suffix):
            raise ValidationError(f"Must use an {self.settings.email_suffix} email address")
        if not password:
            raise ValidationError("password is required")
        if not name or not name.strip():
            raise ValidationError("name is required")

        user = await self.identity.create_user(email, password, name.strip())
        profile = UserProfile(id=user["id"], email=email, name=name.strip())
        await self.repository.save_profile(profile)
        logger.info(f"Created profile for {profile.id}")
        return user, profile

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self.repository.get_profile(user_id)
        if profile is None:
            raise NotFound("Profile not found")
        return profile

    async def update_subscription(self, user_id: str, tier: str) -> UserProfile:
        try:
            new_tier = SubscriptionTier(tier)
        except ValueError:
            allowed = ", ".join(t.value for t in SubscriptionTier)
            raise ValidationError(f"tier must be one of: {allowed}")

        profile = await self.get_profile(user_id)
        profile.subscription_tier = new_tier
        await self.repository.save_profile(profile)
        logger.info(f"Profile {user_id} moved to {new_tier.value} tier")
        return profile

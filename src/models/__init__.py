"""Entity data models."""

from src.models.listing import Listing, ListingStatus, ListingType
from src.models.message import Message
from src.models.profile import SubscriptionTier, UserProfile

__all__ = [
    "Listing",
    "ListingStatus",
    "ListingType",
    "Message",
    "SubscriptionTier",
    "UserProfile",
]

"""Request-level operations used by the HTTP handlers."""

from src.services.account_service import AccountService
from src.services.listing_service import ListingService
from src.services.message_service import MessageService

__all__ = ["AccountService", "ListingService", "MessageService"]

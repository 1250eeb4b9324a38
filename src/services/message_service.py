"""Contact messages between users about a listing."""

import logging

from src.config.settings import Settings
from src.errors import NotFound, ValidationError
from src.models.listing import ListingStatus
from src.models.message import Message
from src.repository.entities import EntityRepository
from src.repository.indexes import IndexMaintainer

logger = logging.getLogger(__name__)


class MessageService:
    """Send messages and read two-party conversations."""

    def __init__(self, repository: EntityRepository, indexes: IndexMaintainer, settings: Settings):
        self.repository = repository
        self.indexes = indexes
        self.settings = settings

    def _resolve_meetup(self, meetup_location: str | None) -> str | None:
        """Turn a configured campus spot slug into its label; free text passes through."""
        if meetup_location is None or not meetup_location.strip():
            return None
        location = self.settings.get_meetup_location(meetup_location.strip())
        return location.label if location else meetup_location.strip()

    async def send(
        self,
        sender_id: str,
        recipient_id: str,
        listing_id: str,
        content: str,
        meetup_location: str | None = None,
    ) -> Message:
        if not recipient_id or not recipient_id.strip():
            raise ValidationError("recipientId is required")
        if not content or not content.strip():
            raise ValidationError("content is required")
        if recipient_id == sender_id:
            raise ValidationError("Cannot send a message to yourself")

        listing = await self.repository.get_listing(listing_id)
        if listing.status == ListingStatus.DELETED:
            raise NotFound("Listing not found")

        message = await self.repository.create_message(
            sender_id=sender_id,
            recipient_id=recipient_id,
            listing_id=listing.id,
            content=content,
            meetup_location=self._resolve_meetup(meetup_location),
        )
        logger.info(f"Message {message.id} sent about {listing.id}")
        return message

    async def conversation(self, user_id: str, other_user_id: str, listing_id: str) -> list[Message]:
        """Messages between the two users about the listing, oldest first."""
        ids = await self.indexes.conversation_ids(user_id, other_user_id, listing_id)
        messages = await self.repository.get_messages(ids)
        participants = {user_id, other_user_id}
        messages = [
            m for m in messages if {m.sender_id, m.recipient_id} == participants
        ]
        return sorted(messages, key=lambda m: m.created_at)

"""Contact message data model."""

from dataclasses import dataclass, field
from datetime import datetime

from src.models.listing import utcnow


@dataclass(frozen=True)
class Message:
    """A message from one user to another about a listing. Immutable."""

    id: str
    sender_id: str
    recipient_id: str
    listing_id: str
    content: str
    meetup_location: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    read: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "recipientId": self.recipient_id,
            "listingId": self.listing_id,
            "content": self.content,
            "meetupLocation": self.meetup_location,
            "createdAt": self.created_at.isoformat(),
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        created_at = data.get("createdAt")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = utcnow()

        return cls(
            id=data["id"],
            sender_id=data["senderId"],
            recipient_id=data["recipientId"],
            listing_id=data["listingId"],
            content=data.get("content", ""),
            meetup_location=data.get("meetupLocation"),
            created_at=created_at,
            read=data.get("read", False),
        )

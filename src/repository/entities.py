"""Typed CRUD over the key-value store for listings, messages and profiles."""

import logging
from typing import Any

from src.errors import Forbidden, NotFound, StorageUnavailable, ValidationError
from src.models.listing import (
    Listing,
    ListingStatus,
    ListingType,
    normalize_wire_keys,
    utcnow,
)
from src.models.message import Message
from src.models.profile import UserProfile
from src.repository.indexes import IndexMaintainer
from src.repository.keys import (
    LISTING_PREFIX,
    MESSAGE_PREFIX,
    listing_key,
    new_listing_id,
    new_message_id,
    user_key,
)
from src.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

# Patch keys that may never change after creation
IMMUTABLE_KEYS = ("id", "userId", "createdAt", "type")


def _raise_if_invalid(listing: Listing):
    errors = listing.validate()
    if errors:
        raise ValidationError("; ".join(errors))


class EntityRepository:
    """Entity storage. Listings are never erased, only marked deleted."""

    def __init__(self, store: KeyValueStore, indexes: IndexMaintainer):
        self.store = store
        self.indexes = indexes

    # Listings

    async def create_listing(self, owner_id: str, draft: dict[str, Any]) -> Listing:
        """Validate a draft, persist it as a new active listing and index it.

        Server-assigned fields in the draft (id, userId, status, timestamps)
        are ignored.
        """
        data = {
            key: value
            for key, value in draft.items()
            if key not in ("id", "userId", "status", "createdAt", "updatedAt", "soldDate")
        }
        listing = Listing.from_dict(data)
        listing.id = new_listing_id()
        listing.user_id = owner_id
        listing.status = ListingStatus.ACTIVE
        listing.created_at = utcnow()
        _raise_if_invalid(listing)

        await self.store.set(listing.id, listing.to_dict())
        logger.info(f"Created {listing.listing_type.value} listing {listing.id} for {owner_id}")

        try:
            await self.indexes.append_user_listing(owner_id, listing.id)
        except StorageUnavailable:
            # Entity write succeeded; a rebuild will pick the listing up.
            logger.exception(f"Failed to index listing {listing.id} for {owner_id}")

        return listing

    async def get_listing(self, listing_id: str) -> Listing:
        """Get a listing by id, including soft-deleted ones."""
        data = await self.store.get(listing_key(listing_id))
        if data is None:
            raise NotFound("Listing not found")
        return Listing.from_dict(data)

    async def _get_owned(self, listing_id: str, requester_id: str) -> Listing:
        listing = await self.get_listing(listing_id)
        if listing.user_id != requester_id:
            raise Forbidden(f"{requester_id} does not own {listing.id}")
        return listing

    async def update_listing(self, listing_id: str, requester_id: str, patch: dict[str, Any]) -> Listing:
        """Merge patch onto an owned listing and persist it.

        Status changes are not checked here; see ListingService.
        """
        listing = await self._get_owned(listing_id, requester_id)
        current = listing.to_dict()
        patch = normalize_wire_keys(patch)

        for key in IMMUTABLE_KEYS:
            if key in patch and patch[key] != current[key]:
                raise ValidationError(f"{key} cannot be changed")

        merged = {**current, **patch}
        updated = Listing.from_dict(merged)
        updated.updated_at = utcnow()
        _raise_if_invalid(updated)

        await self.store.set(updated.id, updated.to_dict())
        return updated

    async def soft_delete_listing(self, listing_id: str, requester_id: str):
        """Mark an owned listing deleted. Record and index entries stay."""
        listing = await self._get_owned(listing_id, requester_id)
        listing.status = ListingStatus.DELETED
        listing.updated_at = utcnow()
        await self.store.set(listing.id, listing.to_dict())
        logger.info(f"Soft-deleted listing {listing.id}")

    async def list_listings(self, listing_type: ListingType | None = None) -> list[Listing]:
        """All non-deleted listings, optionally of one type."""
        listings = []
        for data in await self.store.get_by_prefix(LISTING_PREFIX):
            listing = Listing.from_dict(data)
            if listing.status == ListingStatus.DELETED:
                continue
            if listing_type is not None and listing.listing_type != listing_type:
                continue
            listings.append(listing)
        return listings

    async def list_by_owner(self, owner_id: str) -> list[Listing]:
        """Non-deleted listings from the owner's index, in index order."""
        ids = await self.indexes.user_listing_ids(owner_id)
        listings = []
        for data in await self.store.mget(ids):
            if data is None:
                continue
            listing = Listing.from_dict(data)
            # index membership alone does not prove ownership or liveness
            if listing.status == ListingStatus.DELETED or listing.user_id != owner_id:
                continue
            listings.append(listing)
        return listings

    # Messages

    async def create_message(
        self,
        sender_id: str,
        recipient_id: str,
        listing_id: str,
        content: str,
        meetup_location: str | None = None,
    ) -> Message:
        """Persist a message and append it to its conversation index."""
        message = Message(
            id=new_message_id(),
            sender_id=sender_id,
            recipient_id=recipient_id,
            listing_id=listing_key(listing_id),
            content=content,
            meetup_location=meetup_location,
        )
        await self.store.set(message.id, message.to_dict())

        try:
            await self.indexes.append_conversation(
                sender_id, recipient_id, message.listing_id, message.id
            )
        except StorageUnavailable:
            logger.exception(f"Failed to index message {message.id}")

        return message

    async def get_messages(self, message_ids: list[str]) -> list[Message]:
        """Resolve message ids, skipping any that no longer resolve."""
        return [Message.from_dict(data) for data in await self.store.mget(message_ids) if data]

    async def list_messages(self) -> list[Message]:
        return [Message.from_dict(data) for data in await self.store.get_by_prefix(MESSAGE_PREFIX)]

    # Profiles

    async def get_profile(self, user_id: str) -> UserProfile | None:
        data = await self.store.get(user_key(user_id))
        return UserProfile.from_dict(data) if data else None

    async def save_profile(self, profile: UserProfile):
        await self.store.set(user_key(profile.id), profile.to_dict())

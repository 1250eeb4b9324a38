"""Derived indexes: listings per owner and messages per conversation."""

import logging
from collections import defaultdict
from dataclasses import dataclass

from src.repository.keys import (
    LISTING_PREFIX,
    MESSAGE_PREFIX,
    conversation_key,
    user_listings_key,
)
from src.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class RebuildResult:
    """Number of index keys written by a rebuild pass."""

    user_listings: int = 0
    conversations: int = 0

    def to_dict(self) -> dict:
        return {"userListings": self.user_listings, "conversations": self.conversations}


class IndexMaintainer:
    """Keep the user-listings and conversation indexes in step with entities.

    Appends are read-modify-write with no isolation: two concurrent appends
    to the same key can lose one id. rebuild() recomputes every index from a
    full entity scan and repairs such gaps.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _append(self, key: str, item_id: str):
        ids = await self.store.get(key) or []
        ids.append(item_id)
        await self.store.set(key, ids)

    async def append_user_listing(self, owner_id: str, listing_id: str):
        """Record listing_id at the end of the owner's listing index."""
        await self._append(user_listings_key(owner_id), listing_id)

    async def append_conversation(self, user_a: str, user_b: str, listing_id: str, message_id: str):
        """Record message_id at the end of the two-party thread for listing_id."""
        await self._append(conversation_key(user_a, user_b, listing_id), message_id)

    async def user_listing_ids(self, owner_id: str) -> list[str]:
        return await self.store.get(user_listings_key(owner_id)) or []

    async def conversation_ids(self, user_a: str, user_b: str, listing_id: str) -> list[str]:
        return await self.store.get(conversation_key(user_a, user_b, listing_id)) or []

    async def rebuild(self, prune_deleted: bool = False) -> RebuildResult:
        """Recompute both index families from the stored entities.

        Ids are ordered by creation time. Running this twice gives the same
        result. With prune_deleted, soft-deleted listings are dropped from the
        owner indexes.
        """
        result = RebuildResult()

        by_owner: dict[str, list[dict]] = defaultdict(list)
        for listing in await self.store.get_by_prefix(LISTING_PREFIX):
            owner = listing.get("userId")
            if not owner:
                continue
            # owners whose listings are all pruned still get an empty index
            owned = by_owner[owner]
            if prune_deleted and listing.get("status") == "deleted":
                continue
            owned.append(listing)

        for owner, listings in by_owner.items():
            listings.sort(key=lambda l: (l.get("createdAt") or "", l["id"]))
            await self.store.set(user_listings_key(owner), [l["id"] for l in listings])
            result.user_listings += 1

        by_thread: dict[str, list[dict]] = defaultdict(list)
        for message in await self.store.get_by_prefix(MESSAGE_PREFIX):
            key = conversation_key(message["senderId"], message["recipientId"], message["listingId"])
            by_thread[key].append(message)

        for key, messages in by_thread.items():
            messages.sort(key=lambda m: (m.get("createdAt") or "", m["id"]))
            await self.store.set(key, [m["id"] for m in messages])
            result.conversations += 1

        logger.info(
            f"Rebuilt {result.user_listings} user listing indexes and "
            f"{result.conversations} conversation indexes"
        )
        return result

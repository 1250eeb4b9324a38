"""Listing lifecycle: creation, status transitions, ownership checks, retrieval."""

import logging
from typing import Any

from src.errors import Forbidden, ValidationError
from src.models.listing import (
    Listing,
    ListingStatus,
    ListingType,
    can_transition,
    parse_status,
    utcnow,
)
from src.query.engine import SortKey, sort_listings
from src.query.snapshot import ListingSnapshot
from src.repository.entities import EntityRepository

logger = logging.getLogger(__name__)


def _parse_type(listing_type: str | ListingType | None) -> ListingType | None:
    if listing_type is None or listing_type == "":
        return None
    try:
        return ListingType(listing_type)
    except ValueError:
        raise ValidationError("type must be 'housing' or 'marketplace'")


class ListingService:
    """Owner-facing listing operations on top of the entity repository."""

    def __init__(self, repository: EntityRepository):
        self.repository = repository

    async def create_listing(self, owner_id: str, draft: dict[str, Any]) -> Listing:
        return await self.repository.create_listing(owner_id, draft)

    async def get_listing(self, listing_id: str) -> Listing:
        """Get one listing; soft-deleted records are still returned."""
        return await self.repository.get_listing(listing_id)

    async def update_listing(self, listing_id: str, requester_id: str, patch: dict[str, Any]) -> Listing:
        """Apply an owner's partial update, enforcing the status transition table.

        Entering sold stamps soldDate, leaving sold clears it. Deleted
        listings cannot be updated.
        """
        listing = await self.repository.get_listing(listing_id)
        if listing.user_id != requester_id:
            raise Forbidden(f"{requester_id} does not own {listing.id}")
        if listing.status == ListingStatus.DELETED:
            raise ValidationError("Deleted listings cannot be changed")

        patch = dict(patch)
        patch.pop("soldDate", None)
        patch.pop("updatedAt", None)

        if "status" in patch:
            new_status = parse_status(patch["status"])
            patch["status"] = new_status.value
            if new_status != listing.status:
                if not can_transition(listing.status, new_status):
                    raise ValidationError(
                        f"Cannot change status from {listing.status.value} to {new_status.value}"
                    )
                if new_status == ListingStatus.SOLD:
                    patch["soldDate"] = utcnow().isoformat()
                elif listing.status == ListingStatus.SOLD:
                    patch["soldDate"] = None
                logger.info(
                    f"Listing {listing.id}: {listing.status.value} -> {new_status.value}"
                )

        return await self.repository.update_listing(listing.id, requester_id, patch)

    async def delete_listing(self, listing_id: str, requester_id: str):
        """Soft-delete an owned listing. Deleting twice is a no-op."""
        await self.repository.soft_delete_listing(listing_id, requester_id)

    async def snapshot(
        self,
        listing_type: str | ListingType | None = None,
        category: str | None = None,
    ) -> ListingSnapshot:
        """Fetch the browsable listing set once for repeated local querying."""
        listings = await self.repository.list_listings(_parse_type(listing_type))
        if category:
            listings = [l for l in listings if l.category == category]
        return ListingSnapshot(tuple(sort_listings(listings, SortKey.NEWEST)))

    async def browse(
        self,
        listing_type: str | ListingType | None = None,
        category: str | None = None,
        include_sold: bool = False,
    ) -> list[Listing]:
        """Non-deleted listings, newest first; sold ones only if asked for."""
        snapshot = await self.snapshot(listing_type, category)
        return snapshot.query(include_sold=include_sold)

    async def my_listings(self, owner_id: str, include_sold: bool = True) -> list[Listing]:
        """The owner's non-deleted listings, newest first."""
        listings = await self.repository.list_by_owner(owner_id)
        if not include_sold:
            listings = [l for l in listings if l.status != ListingStatus.SOLD]
        return sort_listings(listings, SortKey.NEWEST)

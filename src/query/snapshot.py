"""Immutable browse snapshot that the query engine runs against."""

from dataclasses import dataclass, field
from datetime import datetime

from src.models.listing import Listing, utcnow
from src.query.engine import Filters, SortKey, query_listings


@dataclass(frozen=True)
class ListingSnapshot:
    """Listings fetched once for a view.

    Refreshing means taking a new snapshot; nothing here changes after
    construction.
    """

    listings: tuple[Listing, ...]
    fetched_at: datetime = field(default_factory=utcnow)

    def __len__(self) -> int:
        return len(self.listings)

    def query(
        self,
        search_term: str = "",
        filters: Filters | None = None,
        sort_key: SortKey = SortKey.NEWEST,
        include_sold: bool = False,
    ) -> list[Listing]:
        return query_listings(self.listings, search_term, filters, sort_key, include_sold)

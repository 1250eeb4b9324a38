"""Client-side style listing search, filter and sort."""

from src.query.engine import Filters, SortKey, query_listings
from src.query.snapshot import ListingSnapshot

__all__ = ["Filters", "ListingSnapshot", "SortKey", "query_listings"]

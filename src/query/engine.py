"""Filter and sort an in-memory listing collection.

Everything here is pure: no I/O, no shared state, inputs are never
mutated. Callers re-run query_listings from scratch whenever the search
text, filters or sort order change.
"""

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Mapping

from src.errors import ValidationError
from src.models.listing import GENDERS, HOUSING_TYPES, Listing, ListingStatus

DISTANCE_BUCKETS = ("walking", "<1", "1-3", "3+")
BEDROOM_OPTIONS = ("studio", "1", "2", "3+")


class SortKey(str, Enum):
    NEWEST = "newest"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    MOVE_IN = "move-in"

    @classmethod
    def parse(cls, value: str | None) -> "SortKey":
        if not value:
            return cls.NEWEST
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(k.value for k in cls)
            raise ValidationError(f"sort must be one of: {allowed}")


@dataclass(frozen=True)
class Filters:
    """Browse filter criteria. None (or empty) means the filter is off."""

    price_min: float | None = None
    price_max: float | None = None
    move_in_date: date | None = None
    move_out_date: date | None = None
    distance: str | None = None
    gender: str | None = None
    housing_types: tuple[str, ...] = ()
    bedrooms: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, object]) -> "Filters":
        """Build filters from string parameters as sent by a browse form.

        Empty strings count as unset. housingTypes may be a list or a
        comma-separated string.
        """

        def text(name: str) -> str | None:
            value = params.get(name)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        def number(name: str) -> float | None:
            value = text(name)
            if value is None:
                return None
            try:
                number = float(value)
            except ValueError:
                raise ValidationError(f"{name} must be a number")
            if not math.isfinite(number):
                raise ValidationError(f"{name} must be a number")
            return number

        def day(name: str) -> date | None:
            value = text(name)
            if value is None:
                return None
            try:
                return date.fromisoformat(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)")

        distance = text("distanceFromCampus")
        if distance is not None and distance not in DISTANCE_BUCKETS:
            raise ValidationError(f"distanceFromCampus must be one of: {', '.join(DISTANCE_BUCKETS)}")

        gender = text("roommateGender")
        if gender is not None and gender not in GENDERS:
            raise ValidationError(f"roommateGender must be one of: {', '.join(GENDERS)}")

        bedrooms = text("bedrooms")
        if bedrooms is not None and bedrooms not in BEDROOM_OPTIONS and not bedrooms.isdigit():
            raise ValidationError(f"bedrooms must be one of: {', '.join(BEDROOM_OPTIONS)}")

        raw_types = params.get("housingTypes") or ()
        if isinstance(raw_types, str):
            raw_types = raw_types.split(",")
        housing_types = tuple(t.strip() for t in raw_types if t and t.strip())
        for housing_type in housing_types:
            if housing_type not in HOUSING_TYPES:
                raise ValidationError(f"housingTypes must be among: {', '.join(HOUSING_TYPES)}")

        return cls(
            price_min=number("priceMin"),
            price_max=number("priceMax"),
            move_in_date=day("moveInDate"),
            move_out_date=day("moveOutDate"),
            distance=distance,
            gender=gender,
            housing_types=housing_types,
            bedrooms=bedrooms,
        )

    @property
    def active_count(self) -> int:
        """Number of filters currently narrowing the view."""
        count = sum(
            value is not None
            for value in (
                self.price_min,
                self.price_max,
                self.move_in_date,
                self.move_out_date,
                self.distance,
                self.gender,
                self.bedrooms,
            )
        )
        return count + len(self.housing_types)


def matches_search(listing: Listing, search_term: str) -> bool:
    """Case-insensitive substring match on title, description and location."""
    if not search_term:
        return True
    needle = search_term.lower()
    haystacks = (listing.title, listing.description, listing.location)
    return any(h and needle in h.lower() for h in haystacks)


def in_distance_bucket(distance: float | None, bucket: str) -> bool:
    if distance is None:
        return True
    if bucket == "walking":
        return distance <= 0.5
    if bucket == "<1":
        return distance < 1
    if bucket == "1-3":
        return 1 <= distance <= 3
    if bucket == "3+":
        return distance > 3
    return True


def matches_bedrooms(bedrooms: int | None, option: str) -> bool:
    if bedrooms is None:
        return False
    if option == "studio":
        return bedrooms == 0
    if option == "3+":
        return bedrooms >= 3
    return bedrooms == int(option)


def matches_filters(listing: Listing, filters: Filters) -> bool:
    """Apply every set filter. Housing-only filters let other types through."""
    if filters.price_min is not None and listing.price < filters.price_min:
        return False
    if filters.price_max is not None and listing.price > filters.price_max:
        return False

    if not listing.is_housing:
        return True

    if filters.move_in_date is not None:
        if listing.available_from is None or listing.available_from < filters.move_in_date:
            return False
    if filters.move_out_date is not None:
        if listing.available_to is None or listing.available_to > filters.move_out_date:
            return False
    if filters.distance is not None and not in_distance_bucket(
        listing.distance_from_campus, filters.distance
    ):
        return False
    if filters.gender is not None and listing.gender not in (None, "any", filters.gender):
        return False
    if filters.housing_types and listing.housing_type not in filters.housing_types:
        return False
    if filters.bedrooms is not None and not matches_bedrooms(listing.bedrooms, filters.bedrooms):
        return False
    return True


def sort_listings(listings: Iterable[Listing], sort_key: SortKey) -> list[Listing]:
    """Stable sort; ties keep their input order.

    move-in is meant for housing views. Listings without an available-from
    date (every marketplace item) keep their relative order after the dated
    ones.
    """
    listings = list(listings)
    if sort_key == SortKey.NEWEST:
        # reverse=True keeps equal elements in input order
        return sorted(listings, key=lambda l: l.created_at.timestamp() if l.created_at else 0.0, reverse=True)
    if sort_key == SortKey.PRICE_LOW:
        return sorted(listings, key=lambda l: l.price)
    if sort_key == SortKey.PRICE_HIGH:
        return sorted(listings, key=lambda l: l.price, reverse=True)
    if sort_key == SortKey.MOVE_IN:
        return sorted(
            listings,
            key=lambda l: (l.available_from is None, l.available_from or date.min),
        )
    return listings


def query_listings(
    listings: Iterable[Listing],
    search_term: str = "",
    filters: Filters | None = None,
    sort_key: SortKey = SortKey.NEWEST,
    include_sold: bool = False,
) -> list[Listing]:
    """Return the visible, matching listings in the requested order."""
    filters = filters or Filters()
    search_term = search_term or ""

    visible = []
    for listing in listings:
        if listing.status == ListingStatus.DELETED:
            continue
        if listing.status == ListingStatus.SOLD and not include_sold:
            continue
        if not matches_search(listing, search_term):
            continue
        if not matches_filters(listing, filters):
            continue
        visible.append(listing)

    return sort_listings(visible, sort_key)

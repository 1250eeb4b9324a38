"""Listing data model and status lifecycle."""

import math
from dataclasses import dataclass, field, fields
from datetime import datetime, date, timezone
from enum import Enum
from typing import Any

from src.errors import ValidationError


class ListingType(str, Enum):
    HOUSING = "housing"
    MARKETPLACE = "marketplace"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"
    DELETED = "deleted"


# Every status change must appear here; deleted is terminal.
ALLOWED_TRANSITIONS: dict[ListingStatus, frozenset[ListingStatus]] = {
    ListingStatus.ACTIVE: frozenset(
        {ListingStatus.PENDING, ListingStatus.SOLD, ListingStatus.DELETED}
    ),
    ListingStatus.PENDING: frozenset(
        {ListingStatus.ACTIVE, ListingStatus.SOLD, ListingStatus.DELETED}
    ),
    ListingStatus.SOLD: frozenset({ListingStatus.ACTIVE, ListingStatus.DELETED}),
    ListingStatus.DELETED: frozenset(),
}

HOUSING_TYPES = ("Apartment", "House", "Dorm", "Studio")
GENDERS = ("any", "male", "female")

HOUSING_FIELDS = (
    "location",
    "bedrooms",
    "bathrooms",
    "available_from",
    "available_to",
    "gender",
    "housing_type",
    "distance_from_campus",
)
MARKETPLACE_FIELDS = ("category", "condition")

# Wire (camelCase) name for each attribute that differs from its Python name
WIRE_NAMES = {
    "listing_type": "type",
    "user_id": "userId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "sold_date": "soldDate",
    "available_from": "availableFrom",
    "available_to": "availableTo",
    "housing_type": "housingType",
    "distance_from_campus": "distanceFromCampus",
}
# Older clients send these duplicates of the availability fields
WIRE_ALIASES = {
    "moveInDate": "available_from",
    "moveOutDate": "available_to",
    "roommateGender": "gender",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: ListingStatus, new: ListingStatus) -> bool:
    """Check whether a listing may move from current to new status."""
    return new in ALLOWED_TRANSITIONS[current]


def normalize_wire_keys(data: dict) -> dict:
    """Rewrite alias keys (moveInDate, ...) to their canonical wire names.

    A canonical key present in data wins over its alias.
    """
    normalized = {}
    for key, value in data.items():
        if key in WIRE_ALIASES:
            canonical = WIRE_ALIASES[key]
            normalized.setdefault(WIRE_NAMES.get(canonical, canonical), value)
    for key, value in data.items():
        if key not in WIRE_ALIASES:
            normalized[key] = value
    return normalized


def parse_status(value: Any) -> ListingStatus:
    try:
        return ListingStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ListingStatus)
        raise ValidationError(f"status must be one of: {allowed}")


def _is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_float(name: str, value: Any) -> float | None:
    if _is_unset(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    # nan and inf parse but cannot be serialized to JSON
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a number")
    return number


def _to_int(name: str, value: Any) -> int | None:
    number = _to_float(name, value)
    if number is None:
        return None
    if not number.is_integer():
        raise ValidationError(f"{name} must be a whole number")
    return int(number)


def _to_date(name: str, value: Any) -> date | None:
    if _is_unset(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)")


def _to_datetime(value: Any) -> datetime | None:
    if _is_unset(value):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass
class Listing:
    """A housing sublease or marketplace item posted by a user."""

    listing_type: ListingType
    title: str
    description: str
    price: float
    user_id: str = ""
    id: str = ""
    status: ListingStatus = ListingStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None
    sold_date: datetime | None = None

    # Housing only
    location: str | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    available_from: date | None = None
    available_to: date | None = None
    gender: str | None = None
    housing_type: str | None = None
    distance_from_campus: float | None = None

    # Marketplace only
    category: str | None = None
    condition: str | None = None

    @property
    def is_housing(self) -> bool:
        return self.listing_type == ListingType.HOUSING

    def validate(self) -> list[str]:
        """Check field invariants and return a list of problems."""
        errors = []
        if not self.title or not self.title.strip():
            errors.append("title is required")
        if not self.description or not self.description.strip():
            errors.append("description is required")
        if self.price is None:
            errors.append("price is required")
        elif self.price < 0:
            errors.append("price must not be negative")

        if self.is_housing:
            foreign = MARKETPLACE_FIELDS
            if not self.location or not self.location.strip():
                errors.append("location is required for housing listings")
            if self.bedrooms is None:
                errors.append("bedrooms is required for housing listings")
            elif self.bedrooms < 0:
                errors.append("bedrooms must not be negative")
            if self.bathrooms is None:
                errors.append("bathrooms is required for housing listings")
            elif self.bathrooms < 0:
                errors.append("bathrooms must not be negative")
            elif not (self.bathrooms * 2).is_integer():
                errors.append("bathrooms must be a multiple of 0.5")
            if self.available_from is None:
                errors.append("availableFrom is required for housing listings")
            elif self.available_to is not None and self.available_to < self.available_from:
                errors.append("availableTo must not be before availableFrom")
            if self.gender is not None and self.gender not in GENDERS:
                errors.append(f"gender must be one of: {', '.join(GENDERS)}")
            if self.housing_type is None:
                errors.append("housingType is required for housing listings")
            elif self.housing_type not in HOUSING_TYPES:
                errors.append(f"housingType must be one of: {', '.join(HOUSING_TYPES)}")
            if self.distance_from_campus is not None and self.distance_from_campus < 0:
                errors.append("distanceFromCampus must not be negative")
        else:
            foreign = HOUSING_FIELDS
            if not self.category:
                errors.append("category is required for marketplace listings")
            if not self.condition:
                errors.append("condition is required for marketplace listings")

        for name in foreign:
            if getattr(self, name) is not None:
                wire = WIRE_NAMES.get(name, name)
                errors.append(f"{wire} is not allowed on {self.listing_type.value} listings")
        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for storage and JSON responses."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, (datetime, date)):
                value = value.isoformat()
            data[WIRE_NAMES.get(f.name, f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Listing":
        """Create a Listing from a wire/storage dictionary.

        Unknown keys are ignored. Raises ValidationError when a value has the
        wrong type or the listing type is missing.
        """
        values = {}
        reverse = {wire: name for name, wire in WIRE_NAMES.items()}
        known = {f.name for f in fields(cls)}
        for key, value in normalize_wire_keys(data).items():
            name = reverse.get(key, key)
            if name in known:
                values[name] = value

        try:
            listing_type = ListingType(values.get("listing_type"))
        except ValueError:
            raise ValidationError("type must be 'housing' or 'marketplace'")

        status = values.get("status")
        if status in (None, "", "available"):
            status = ListingStatus.ACTIVE
        else:
            status = parse_status(status)

        try:
            created_at = _to_datetime(values.get("created_at"))
            updated_at = _to_datetime(values.get("updated_at"))
            sold_date = _to_datetime(values.get("sold_date"))
        except ValueError:
            raise ValidationError("timestamps must be ISO-8601")

        gender = values.get("gender")
        if _is_unset(gender) and listing_type == ListingType.HOUSING:
            gender = "any"

        return cls(
            id=_to_str(values.get("id")) or "",
            listing_type=listing_type,
            title=_to_str(values.get("title")) or "",
            description=_to_str(values.get("description")) or "",
            price=_to_float("price", values.get("price")),
            user_id=_to_str(values.get("user_id")) or "",
            status=status,
            created_at=created_at,
            updated_at=updated_at,
            sold_date=sold_date,
            location=None if _is_unset(values.get("location")) else str(values["location"]),
            bedrooms=_to_int("bedrooms", values.get("bedrooms")),
            bathrooms=_to_float("bathrooms", values.get("bathrooms")),
            available_from=_to_date("availableFrom", values.get("available_from")),
            available_to=_to_date("availableTo", values.get("available_to")),
            gender=None if _is_unset(gender) else str(gender),
            housing_type=None if _is_unset(values.get("housing_type")) else str(values["housing_type"]),
            distance_from_campus=_to_float("distanceFromCampus", values.get("distance_from_campus")),
            category=None if _is_unset(values.get("category")) else str(values["category"]),
            condition=None if _is_unset(values.get("condition")) else str(values["condition"]),
        )

"""Key naming scheme for entities and indexes in the key-value store."""

import uuid

LISTING_PREFIX = "listing:"
MESSAGE_PREFIX = "message:"
USER_PREFIX = "user:"
USER_LISTINGS_PREFIX = "user-listings:"
CONVERSATION_PREFIX = "conversation:"


def new_listing_id() -> str:
    return f"{LISTING_PREFIX}{uuid.uuid4()}"


def new_message_id() -> str:
    return f"{MESSAGE_PREFIX}{uuid.uuid4()}"


def listing_key(listing_id: str) -> str:
    """Listing ids are their own keys; a bare uuid gets the prefix added."""
    if listing_id.startswith(LISTING_PREFIX):
        return listing_id
    return f"{LISTING_PREFIX}{listing_id}"


def user_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


def user_listings_key(user_id: str) -> str:
    return f"{USER_LISTINGS_PREFIX}{user_id}"


def conversation_key(user_a: str, user_b: str, listing_id: str) -> str:
    """Key of the message thread between two users about a listing.

    The participant ids are sorted so both sides compute the same key.
    """
    first, second = sorted([str(user_a), str(user_b)])
    return f"{CONVERSATION_PREFIX}{first}:{second}:{listing_key(listing_id)}"

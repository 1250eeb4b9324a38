import pytest

from factories import housing_draft, marketplace_draft
from src.errors import Forbidden, NotFound, ValidationError
from src.models.listing import ListingStatus


async def test_marking_sold_stamps_sold_date(listing_service):
    listing = await listing_service.create_listing("alice", housing_draft())
    sold = await listing_service.update_listing(listing.id, "alice", {"status": "sold"})

    assert sold.status == ListingStatus.SOLD
    assert sold.sold_date is not None


async def test_relisting_clears_sold_date(listing_service):
    listing = await listing_service.create_listing("alice", housing_draft())
    await listing_service.update_listing(listing.id, "alice", {"status": "sold"})
    relisted = await listing_service.update_listing(listing.id, "alice", {"status": "active"})

    assert relisted.status == ListingStatus.ACTIVE
    assert relisted.sold_date is None


async def test_client_cannot_set_sold_date_directly(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    updated = await listing_service.update_listing(
        listing.id, "alice", {"soldDate": "2020-01-01T00:00:00+00:00", "price": 30}
    )
    assert updated.sold_date is None
    assert updated.price == 30


async def test_negotiation_goes_through_pending(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    pending = await listing_service.update_listing(listing.id, "alice", {"status": "pending"})
    assert pending.status == ListingStatus.PENDING

    back = await listing_service.update_listing(listing.id, "alice", {"status": "active"})
    assert back.status == ListingStatus.ACTIVE

    await listing_service.update_listing(listing.id, "alice", {"status": "pending"})
    sold = await listing_service.update_listing(listing.id, "alice", {"status": "sold"})
    assert sold.status == ListingStatus.SOLD


async def test_sold_cannot_go_to_pending(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    await listing_service.update_listing(listing.id, "alice", {"status": "sold"})

    with pytest.raises(ValidationError, match="from sold to pending"):
        await listing_service.update_listing(listing.id, "alice", {"status": "pending"})


async def test_deleted_listing_cannot_change(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    await listing_service.delete_listing(listing.id, "alice")

    for status in ("active", "pending", "sold"):
        with pytest.raises(ValidationError):
            await listing_service.update_listing(listing.id, "alice", {"status": status})
    with pytest.raises(ValidationError):
        await listing_service.update_listing(listing.id, "alice", {"price": 1})

    assert (await listing_service.get_listing(listing.id)).status == ListingStatus.DELETED


async def test_unknown_status_is_rejected(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    with pytest.raises(ValidationError, match="status must be one of"):
        await listing_service.update_listing(listing.id, "alice", {"status": "archived"})


async def test_restating_current_status_is_allowed(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    same = await listing_service.update_listing(
        listing.id, "alice", {"status": "active", "title": "Bigger fridge"}
    )
    assert same.status == ListingStatus.ACTIVE
    assert same.title == "Bigger fridge"


async def test_non_owner_is_forbidden_before_transition_check(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    with pytest.raises(Forbidden):
        await listing_service.update_listing(listing.id, "bob", {"status": "bogus"})
    with pytest.raises(Forbidden):
        await listing_service.delete_listing(listing.id, "bob")
    assert (await listing_service.get_listing(listing.id)).status == ListingStatus.ACTIVE


async def test_update_missing_listing_is_not_found(listing_service):
    with pytest.raises(NotFound):
        await listing_service.update_listing("listing:missing", "alice", {"status": "sold"})


async def test_status_can_be_set_to_deleted_by_update(listing_service):
    listing = await listing_service.create_listing("alice", marketplace_draft())
    deleted = await listing_service.update_listing(listing.id, "alice", {"status": "deleted"})
    assert deleted.status == ListingStatus.DELETED
    assert await listing_service.browse() == []


async def test_browse_hides_sold_unless_requested(listing_service):
    kept = await listing_service.create_listing("alice", housing_draft())
    sold = await listing_service.create_listing("alice", housing_draft(title="Other room"))
    await listing_service.update_listing(sold.id, "alice", {"status": "sold"})

    assert [l.id for l in await listing_service.browse()] == [kept.id]
    assert {l.id for l in await listing_service.browse(include_sold=True)} == {kept.id, sold.id}


async def test_browse_filters_type_and_category_newest_first(listing_service):
    lamp = await listing_service.create_listing("alice", marketplace_draft(category="furniture"))
    book = await listing_service.create_listing("bob", marketplace_draft(category="textbooks"))
    desk = await listing_service.create_listing("bob", marketplace_draft(category="furniture"))
    await listing_service.create_listing("carol", housing_draft())

    assert [l.id for l in await listing_service.browse("marketplace")] == [desk.id, book.id, lamp.id]
    assert [l.id for l in await listing_service.browse("marketplace", "furniture")] == [desk.id, lamp.id]


async def test_browse_rejects_unknown_type(listing_service):
    with pytest.raises(ValidationError):
        await listing_service.browse("cars")


async def test_my_listings_newest_first_and_sold_optional(listing_service):
    older = await listing_service.create_listing("alice", housing_draft())
    newer = await listing_service.create_listing("alice", marketplace_draft())
    await listing_service.create_listing("bob", marketplace_draft())
    await listing_service.update_listing(older.id, "alice", {"status": "sold"})

    assert [l.id for l in await listing_service.my_listings("alice")] == [newer.id, older.id]
    assert [l.id for l in await listing_service.my_listings("alice", include_sold=False)] == [newer.id]


async def test_snapshot_is_a_fixed_view(listing_service):
    first = await listing_service.create_listing("alice", housing_draft())
    snapshot = await listing_service.snapshot("housing")
    await listing_service.create_listing("alice", housing_draft(title="Later"))

    assert [l.id for l in snapshot.query()] == [first.id]
    assert len(await listing_service.snapshot("housing")) == 2

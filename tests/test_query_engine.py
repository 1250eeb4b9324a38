import copy
from datetime import date, datetime, timezone

import pytest

from factories import make_listing
from src.errors import ValidationError
from src.models.listing import ListingStatus, ListingType
from src.query.engine import Filters, SortKey, query_listings


def ids(listings):
    return [l.id for l in listings]


@pytest.fixture
def two_prices():
    cheap = make_listing(
        id="listing:cheap", price=500, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )
    pricey = make_listing(
        id="listing:pricey", price=800, created_at=datetime(2025, 2, 1, tzinfo=timezone.utc)
    )
    return [cheap, pricey]


def test_sort_price_low(two_prices):
    assert [l.price for l in query_listings(two_prices, sort_key=SortKey.PRICE_LOW)] == [500, 800]


def test_sort_newest(two_prices):
    assert [l.price for l in query_listings(two_prices, sort_key=SortKey.NEWEST)] == [800, 500]


def test_sort_price_high(two_prices):
    assert [l.price for l in query_listings(two_prices, sort_key=SortKey.PRICE_HIGH)] == [800, 500]


def test_sort_is_stable_for_ties():
    listings = [make_listing(id=f"listing:{n}", price=100) for n in range(5)]
    assert ids(query_listings(listings, sort_key=SortKey.PRICE_LOW)) == ids(listings)
    assert ids(query_listings(listings, sort_key=SortKey.PRICE_HIGH)) == ids(listings)
    assert ids(query_listings(listings, sort_key=SortKey.NEWEST)) == ids(listings)


def test_move_in_sort_puts_missing_dates_last():
    late = make_listing(id="listing:late", available_from=date(2025, 6, 1))
    none = make_listing(id="listing:none", available_from=None)
    early = make_listing(id="listing:early", available_from=date(2025, 1, 1))

    result = query_listings([late, none, early], sort_key=SortKey.MOVE_IN)
    assert ids(result) == ["listing:early", "listing:late", "listing:none"]


def test_move_in_sort_keeps_marketplace_order():
    items = [make_listing(id=f"listing:{n}", listing_type=ListingType.MARKETPLACE) for n in range(3)]
    assert ids(query_listings(items, sort_key=SortKey.MOVE_IN)) == ids(items)


def test_running_twice_gives_identical_output(two_prices):
    filters = Filters(price_min=100, distance="walking")
    snapshot = copy.deepcopy(two_prices)

    first = query_listings(two_prices, "room", filters, SortKey.PRICE_HIGH)
    second = query_listings(two_prices, "room", filters, SortKey.PRICE_HIGH)

    assert first == second
    assert two_prices == snapshot


def test_sold_hidden_unless_included():
    sold = make_listing(id="listing:sold", status=ListingStatus.SOLD)
    active = make_listing(id="listing:active")

    assert ids(query_listings([sold, active])) == ["listing:active"]
    assert set(ids(query_listings([sold, active], include_sold=True))) == {
        "listing:sold",
        "listing:active",
    }


def test_deleted_never_visible():
    deleted = make_listing(status=ListingStatus.DELETED)
    assert query_listings([deleted], include_sold=True) == []


@pytest.mark.parametrize("term", ["SUNNY", "basement", "henrietta", ""])
def test_search_matches_title_description_location_case_insensitively(term):
    listing = make_listing(
        title="Sunny room", description="Dry basement storage", location="Henrietta"
    )
    assert query_listings([listing], search_term=term) == [listing]


def test_search_excludes_non_matching():
    listing = make_listing(title="Room", description="Nice", location=None)
    assert query_listings([listing], search_term="garage") == []


def test_price_range_applies_to_every_type():
    item = make_listing(id="listing:item", listing_type=ListingType.MARKETPLACE, price=40)
    room = make_listing(id="listing:room", price=600)

    assert ids(query_listings([item, room], filters=Filters(price_min=50))) == ["listing:room"]
    assert ids(query_listings([item, room], filters=Filters(price_max=50))) == ["listing:item"]


@pytest.mark.parametrize(
    "distance, bucket, visible",
    [
        (0.4, "walking", True),
        (2, "walking", False),
        (0.5, "walking", True),
        (0.9, "<1", True),
        (1, "<1", False),
        (1, "1-3", True),
        (3, "1-3", True),
        (3.1, "1-3", False),
        (3.1, "3+", True),
        (3, "3+", False),
        (None, "3+", True),
    ],
)
def test_distance_buckets(distance, bucket, visible):
    listing = make_listing(distance_from_campus=distance)
    result = query_listings([listing], filters=Filters(distance=bucket))
    assert (result == [listing]) is visible


def test_housing_filters_do_not_hide_marketplace_items():
    item = make_listing(listing_type=ListingType.MARKETPLACE)
    filters = Filters(
        move_in_date=date(2025, 1, 1),
        distance="walking",
        gender="female",
        housing_types=("Dorm",),
        bedrooms="2",
    )
    assert query_listings([item], filters=filters) == [item]


def test_move_in_and_move_out_dates():
    listing = make_listing(available_from=date(2025, 1, 10), available_to=date(2025, 5, 1))
    open_ended = make_listing(id="listing:2", available_from=date(2025, 1, 10), available_to=None)

    assert query_listings([listing], filters=Filters(move_in_date=date(2025, 1, 1))) == [listing]
    assert query_listings([listing], filters=Filters(move_in_date=date(2025, 2, 1))) == []
    assert query_listings([listing], filters=Filters(move_out_date=date(2025, 6, 1))) == [listing]
    assert query_listings([listing], filters=Filters(move_out_date=date(2025, 4, 1))) == []
    assert query_listings([open_ended], filters=Filters(move_out_date=date(2025, 6, 1))) == []


@pytest.mark.parametrize(
    "listing_gender, wanted, visible",
    [("female", "female", True), ("male", "female", False), ("any", "male", True), (None, "male", True)],
)
def test_gender_preference(listing_gender, wanted, visible):
    listing = make_listing(gender=listing_gender)
    assert (query_listings([listing], filters=Filters(gender=wanted)) == [listing]) is visible


def test_housing_type_membership():
    dorm = make_listing(id="listing:dorm", housing_type="Dorm")
    house = make_listing(id="listing:house", housing_type="House")
    result = query_listings([dorm, house], filters=Filters(housing_types=("Dorm", "Studio")))
    assert ids(result) == ["listing:dorm"]


@pytest.mark.parametrize(
    "bedrooms, option, visible",
    [
        (0, "studio", True),
        (1, "studio", False),
        (1, "1", True),
        (2, "1", False),
        (3, "3+", True),
        (5, "3+", True),
        (2, "3+", False),
        (0, "1", False),
    ],
)
def test_bedroom_options(bedrooms, option, visible):
    listing = make_listing(bedrooms=bedrooms)
    assert (query_listings([listing], filters=Filters(bedrooms=option)) == [listing]) is visible


def test_filters_from_params_treats_empty_strings_as_unset():
    filters = Filters.from_params({
        "priceMin": "",
        "priceMax": "900",
        "moveInDate": "2025-01-01",
        "distanceFromCampus": "",
        "housingTypes": "Apartment,Dorm",
        "bedrooms": "studio",
    })
    assert filters == Filters(
        price_max=900.0,
        move_in_date=date(2025, 1, 1),
        housing_types=("Apartment", "Dorm"),
        bedrooms="studio",
    )
    assert filters.active_count == 5


@pytest.mark.parametrize(
    "params",
    [
        {"priceMin": "cheap"},
        {"priceMax": "inf"},
        {"moveInDate": "next week"},
        {"distanceFromCampus": "far"},
        {"roommateGender": "robots"},
        {"housingTypes": ["Castle"]},
        {"bedrooms": "many"},
    ],
)
def test_filters_from_params_rejects_bad_values(params):
    with pytest.raises(ValidationError):
        Filters.from_params(params)


def test_sort_key_parse():
    assert SortKey.parse(None) == SortKey.NEWEST
    assert SortKey.parse("move-in") == SortKey.MOVE_IN
    with pytest.raises(ValidationError):
        SortKey.parse("random")

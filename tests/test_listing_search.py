import pytest

from app.core.exceptions import ValidationError
from app.models import PropertyListing, PropertyStatus
from app.services.listing_search import ListingFilters, SortKey, search


@pytest.fixture
def marina(db, make_broker, make_listing):
    """Six Dubai Marina listings and two elsewhere."""
    broker = make_broker()
    prices = ["AED 1,200,000", "AED 2,500,000", "AED 1,800,000", "AED 950,000", "AED 1,800,000", "AED 3,100,000"]
    listings = [make_listing(broker, price=p, bedrooms=1 + i % 3) for i, p in enumerate(prices)]
    make_listing(broker, location="Downtown Dubai", price="AED 1,500,000")
    make_listing(broker, location="Jumeirah Village Circle", price="AED 700,000")
    return listings


def test_price_and_area_are_derived_on_write(db, make_broker, make_listing):
    listing = make_listing(make_broker(), price="AED 2,500,000", area="1,450 sq ft")
    assert listing.price_numeric == 2500000
    assert listing.area_numeric == 1450

    listing.price = "AED 2,750,000"
    listing.area = "1,600 sq ft"
    db.commit()
    db.refresh(listing)
    assert listing.price_numeric == 2750000
    assert listing.area_numeric == 1600


def test_same_query_twice_returns_same_page(db, marina):
    filters = ListingFilters.from_query(location="Dubai Marina")

    first = search(db, filters, sort="price_asc", limit=12, offset=0)
    second = search(db, filters, sort="price_asc", limit=12, offset=0)

    assert [p.id for p in first.items] == [p.id for p in second.items]
    assert first.total == second.total == 6


def test_price_ties_break_newest_first(db, marina):
    page = search(db, ListingFilters.from_query(location="Dubai Marina"), sort=SortKey.PRICE_ASC)
    prices = [p.price_numeric for p in page.items]
    assert prices == sorted(prices)

    tied = [p for p in page.items if p.price_numeric == 1800000]
    assert [p.id for p in tied] == [marina[4].id, marina[2].id]


def test_pages_do_not_overlap(db, marina):
    filters = ListingFilters.from_query(location="marina")
    seen = []
    offset = 0
    while True:
        page = search(db, filters, sort="price_desc", limit=4, offset=offset)
        seen += [p.id for p in page.items]
        if not page.has_more:
            break
        offset += page.limit
    assert len(seen) == len(set(seen)) == 6


def test_price_range_and_bedrooms_with_full_total(db, make_broker, make_listing):
    broker = make_broker()
    make_listing(broker, price="AED 1,000,000", bedrooms=2)
    make_listing(broker, price="AED 2,000,000", bedrooms=2)
    make_listing(broker, price="AED 1,500,000", bedrooms=2)
    make_listing(broker, price="AED 1,500,000", bedrooms=3)
    make_listing(broker, price="AED 2,000,001", bedrooms=2)
    make_listing(broker, price="AED 999,999", bedrooms=2)

    filters = ListingFilters.from_query(min_price=1000000, max_price=2000000, bedrooms=2)
    page = search(db, filters, limit=1)

    assert page.total == 3
    assert len(page.items) == 1
    assert page.has_more is True
    everything = search(db, filters, limit=50).items
    assert all(1000000 <= p.price_numeric <= 2000000 and p.bedrooms == 2 for p in everything)


def test_offset_beyond_total_is_empty(db, marina):
    page = search(db, ListingFilters.from_query(location="Dubai Marina"), offset=100)
    assert page.items == []
    assert page.total == 6
    assert page.has_more is False


def test_negative_offset_is_rejected(db):
    with pytest.raises(ValidationError):
        search(db, offset=-1)


@pytest.mark.parametrize("requested,applied", [(None, 20), (0, 1), (-5, 1), (12, 12), (500, 50)])
def test_limit_is_clamped(db, requested, applied):
    assert search(db, limit=requested).limit == applied


def test_removed_and_sold_are_hidden_by_default(db, make_broker, make_listing):
    broker = make_broker()
    live = make_listing(broker)
    make_listing(broker, status="removed")
    sold = make_listing(broker, status="sold")

    assert [p.id for p in search(db).items] == [live.id]
    assert [p.id for p in search(db, ListingFilters.from_query(status="sold")).items] == [sold.id]
    # unknown status falls back to available
    assert [p.id for p in search(db, ListingFilters.from_query(status="gone")).items] == [live.id]


def test_unknown_enum_filters_are_ignored(db, marina):
    filters = ListingFilters.from_query(type="timeshare", property_type="castle", furnishing="partly")
    assert search(db, filters).total == 8


def test_location_match_is_case_insensitive_substring(db, marina):
    assert search(db, ListingFilters.from_query(location="DUBAI")).total == 7
    assert search(db, ListingFilters.from_query(location="100%")).total == 0


def test_type_furnishing_area_and_featured_filters(db, make_broker, make_listing):
    broker = make_broker()
    rental = make_listing(broker, type="rental", furnishing="Furnished", area="800 sq ft")
    make_listing(broker, type="rental", furnishing="Unfurnished", area="1,800 sq ft")
    offplan = make_listing(broker, type="off-plan", area="2,400 sq ft", featured=True)

    assert [p.id for p in search(db, ListingFilters.from_query(type="rental", furnishing="furnished")).items] == [rental.id]
    assert [p.id for p in search(db, ListingFilters.from_query(type="off-plan")).items] == [offplan.id]
    assert [p.id for p in search(db, ListingFilters.from_query(min_area=2000)).items] == [offplan.id]
    assert [p.id for p in search(db, ListingFilters.from_query(max_area=1000)).items] == [rental.id]
    assert [p.id for p in search(db, ListingFilters.from_query(featured=True)).items] == [offplan.id]


def test_popular_and_area_sorts(db, make_broker, make_listing):
    broker = make_broker()
    small = make_listing(broker, area="500 sq ft", view_count=40)
    large = make_listing(broker, area="3,000 sq ft", view_count=2)
    medium = make_listing(broker, area="1,000 sq ft", view_count=15)

    assert [p.id for p in search(db, sort="popular").items] == [small.id, medium.id, large.id]
    assert [p.id for p in search(db, sort="area_desc").items] == [large.id, medium.id, small.id]
    assert [p.id for p in search(db, sort="newest").items] == [medium.id, large.id, small.id]


def test_broker_filter(db, make_broker, make_listing):
    mine, theirs = make_broker(), make_broker()
    own = make_listing(mine)
    make_listing(theirs)

    page = search(db, ListingFilters.from_query(broker_id=mine.id))
    assert [p.id for p in page.items] == [own.id]
    assert db.query(PropertyListing).filter(PropertyListing.status == PropertyStatus.AVAILABLE).count() == 2

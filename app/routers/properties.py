from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from app.core.database import get_db
from app.models.broker import Broker
from app.models.property import PropertyListing
from app.schemas.property import (
    ListingCreate, ListingUpdate, ListingResponse, ListingSearchResponse,
    OtherBrokerResponse, ListingStatsResponse,
)
from app.services import listings
from app.services.directory import rating_summary
from app.services.listing_search import ListingFilters, search
from app.api.deps import get_current_broker

router = APIRouter(prefix="/properties", tags=["Properties"])


def _require_owner(listing: PropertyListing, broker: Broker, action: str):
    if listing.broker_id != broker.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own properties.",
        )


# ─── SEARCH (public) ──────────────────────────────────────────────────────────
# Enum-ish parameters are plain strings: unknown values are ignored, not 422'd.

@router.get("/", response_model=ListingSearchResponse)
async def search_properties(
    db: Session = Depends(get_db),
    type: Optional[str] = Query(None),
    property_type: Optional[str] = Query(None, alias="propertyType"),
    location: Optional[str] = Query(None),
    bedrooms: Optional[int] = Query(None, ge=0),
    furnishing: Optional[str] = Query(None),
    min_price: Optional[int] = Query(None, alias="minPrice"),
    max_price: Optional[int] = Query(None, alias="maxPrice"),
    min_area: Optional[int] = Query(None, alias="minArea"),
    max_area: Optional[int] = Query(None, alias="maxArea"),
    featured: Optional[bool] = Query(None),
    broker_id: Optional[UUID] = Query(None, alias="brokerId"),
    listing_status: Optional[str] = Query(None, alias="status"),
    sort: Optional[str] = Query("newest"),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
):
    """Filtered, sorted, paginated listing search."""
    filters = ListingFilters.from_query(
        type=type,
        property_type=property_type,
        location=location,
        bedrooms=bedrooms,
        furnishing=furnishing,
        min_price=min_price,
        max_price=max_price,
        min_area=min_area,
        max_area=max_area,
        featured=featured,
        broker_id=broker_id,
        status=listing_status,
    )
    page = search(db, filters, sort=sort, limit=limit, offset=offset)
    return ListingSearchResponse(
        items=[ListingResponse.model_validate(p) for p in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


# ─── HOMEPAGE (public) ────────────────────────────────────────────────────────

@router.get("/stats/overview", response_model=ListingStatsResponse)
async def stats_overview(db: Session = Depends(get_db)):
    return listings.stats_overview(db)


@router.get("/featured/list", response_model=List[ListingResponse])
async def featured_properties(db: Session = Depends(get_db)):
    return listings.featured_listings(db)


# ─── BROKER: own listings ─────────────────────────────────────────────────────

@router.get("/my/listings", response_model=List[ListingResponse])
async def my_listings(
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    """All of the broker's listings, including removed ones."""
    return listings.broker_listings(db, broker)


@router.post("/", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    data: ListingCreate,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    return listings.create_listing(db, broker, data.model_dump())


@router.put("/{property_id}", response_model=ListingResponse)
async def update_property(
    property_id: UUID,
    data: ListingUpdate,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    """Partial update. Changing price or area re-derives the numeric fields."""
    listing = listings.get_listing(db, property_id)
    _require_owner(listing, broker, "update")
    return listings.update_listing(db, listing, data.model_dump(exclude_unset=True))


@router.delete("/{property_id}", response_model=dict)
async def delete_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    listing = listings.get_listing(db, property_id)
    _require_owner(listing, broker, "delete")
    listings.remove_listing(db, listing)
    return {"success": True, "message": "Property removed"}


# ─── DETAIL (public) ──────────────────────────────────────────────────────────

@router.get("/{property_id}", response_model=ListingResponse)
async def get_property(property_id: UUID, db: Session = Depends(get_db)):
    """Get a single property. Public, no auth required. Increments view count."""
    listing = listings.get_listing(db, property_id, public=True)
    return listings.record_view(db, listing)


@router.get("/{property_id}/similar", response_model=List[ListingResponse])
async def similar_properties(property_id: UUID, db: Session = Depends(get_db)):
    listing = listings.get_listing(db, property_id, public=True)
    return listings.similar_listings(db, listing)


@router.get("/{property_id}/other-brokers", response_model=List[OtherBrokerResponse])
async def other_brokers(property_id: UUID, db: Session = Depends(get_db)):
    listing = listings.get_listing(db, property_id, public=True)
    results = []
    for broker, count in listings.other_brokers_in_area(db, listing):
        rating, review_count = rating_summary(broker)
        results.append(OtherBrokerResponse(
            id=broker.id,
            name=broker.name,
            photo_url=broker.photo_url,
            whatsapp_number=broker.whatsapp_number,
            verified=broker.is_verified,
            rating=rating,
            review_count=review_count,
            properties_in_area=count,
        ))
    return results

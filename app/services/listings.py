"""Listing write path and the secondary read views (detail, similar, stats)."""

import logging
import math
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.broker import Broker
from app.models.property import PropertyListing, PropertyStatus, ListingType

logger = logging.getLogger(__name__)

SIMILAR_LIMIT = 6
FEATURED_LIMIT = 6
OTHER_BROKERS_LIMIT = 5

# Fields a broker may set directly; price/area derive their numeric twins on the model.
EDITABLE_FIELDS = (
    "type", "property_type", "title", "description", "location", "building",
    "address", "latitude", "longitude", "price", "payment_plan", "bedrooms",
    "bathrooms", "area", "furnishing", "completion_year", "permit_number",
    "amenities", "features", "images", "video_url", "floor_plan_url", "status",
)


def next_reference_number(db: Session) -> str:
    count = db.query(func.count(PropertyListing.id)).scalar() or 0
    return f"MS-{count + 1:05d}"


def get_listing(db: Session, listing_id: UUID, public: bool = False) -> PropertyListing:
    """Public reads treat removed listings as gone; the owning broker still sees them."""
    listing = db.get(PropertyListing, listing_id)
    if listing is None or (public and listing.status == PropertyStatus.REMOVED):
        raise NotFoundError("Property not found")
    return listing


def create_listing(db: Session, broker: Broker, data: dict) -> PropertyListing:
    values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
    for key in ("amenities", "features", "images"):
        values[key] = list(values.get(key) or [])
    try:
        listing = PropertyListing(
            broker_id=broker.id,
            reference_number=next_reference_number(db),
            **values,
        )
        db.add(listing)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(listing)
    logger.info("Listing %s (%s) created by broker %s", listing.id, listing.reference_number, broker.id)
    return listing


def update_listing(db: Session, listing: PropertyListing, data: dict) -> PropertyListing:
    try:
        for key, value in data.items():
            if key not in EDITABLE_FIELDS or value is None:
                continue
            if key in ("amenities", "features", "images"):
                value = list(value)
            setattr(listing, key, value)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(listing)
    return listing


def remove_listing(db: Session, listing: PropertyListing) -> PropertyListing:
    """Soft-remove: the row stays, search no longer returns it."""
    listing.status = PropertyStatus.REMOVED
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(listing)
    logger.info("Listing %s removed", listing.id)
    return listing


def record_view(db: Session, listing: PropertyListing) -> PropertyListing:
    try:
        db.query(PropertyListing).filter(PropertyListing.id == listing.id).update(
            {PropertyListing.view_count: PropertyListing.view_count + 1},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(listing)
    return listing


def broker_listings(db: Session, broker: Broker) -> List[PropertyListing]:
    return (
        db.query(PropertyListing)
        .filter(PropertyListing.broker_id == broker.id)
        .order_by(PropertyListing.created_at.desc())
        .all()
    )


def similar_listings(db: Session, listing: PropertyListing) -> List[PropertyListing]:
    """Same location and type, ±20% price, ±1 bedroom, other brokers; relaxed if too few."""
    available = PropertyListing.status == PropertyStatus.AVAILABLE
    similar = (
        db.query(PropertyListing)
        .filter(
            available,
            PropertyListing.id != listing.id,
            PropertyListing.broker_id != listing.broker_id,
            PropertyListing.location == listing.location,
            PropertyListing.property_type == listing.property_type,
            PropertyListing.price_numeric >= math.floor(listing.price_numeric * 0.8),
            PropertyListing.price_numeric <= math.ceil(listing.price_numeric * 1.2),
            PropertyListing.bedrooms >= max(0, listing.bedrooms - 1),
            PropertyListing.bedrooms <= listing.bedrooms + 1,
        )
        .order_by(PropertyListing.created_at.desc())
        .limit(SIMILAR_LIMIT)
        .all()
    )

    if len(similar) < 3:
        exclude = [listing.id] + [p.id for p in similar]
        similar += (
            db.query(PropertyListing)
            .filter(
                available,
                PropertyListing.id.notin_(exclude),
                (PropertyListing.location == listing.location)
                | (PropertyListing.property_type == listing.property_type),
            )
            .order_by(PropertyListing.created_at.desc())
            .limit(SIMILAR_LIMIT - len(similar))
            .all()
        )
    return similar


def other_brokers_in_area(db: Session, listing: PropertyListing) -> List[tuple]:
    """(broker, listings_in_area) for other brokers with available listings in the same location."""
    counts = (
        db.query(PropertyListing.broker_id, func.count(PropertyListing.id))
        .filter(
            PropertyListing.broker_id != listing.broker_id,
            PropertyListing.location == listing.location,
            PropertyListing.status == PropertyStatus.AVAILABLE,
        )
        .group_by(PropertyListing.broker_id)
        .all()
    )
    if not counts:
        return []
    count_by_broker = dict(counts)
    brokers = (
        db.query(Broker)
        .filter(Broker.id.in_(list(count_by_broker)))
        .limit(OTHER_BROKERS_LIMIT)
        .all()
    )
    return [(b, count_by_broker[b.id]) for b in brokers]


def stats_overview(db: Session) -> dict:
    available = PropertyListing.status == PropertyStatus.AVAILABLE

    def _count(*conditions) -> int:
        return db.query(func.count(PropertyListing.id)).filter(available, *conditions).scalar() or 0

    locations = (
        db.query(PropertyListing.location, func.count(PropertyListing.id).label("n"))
        .filter(available)
        .group_by(PropertyListing.location)
        .order_by(func.count(PropertyListing.id).desc(), PropertyListing.location.asc())
        .limit(10)
        .all()
    )
    return {
        "total_properties": _count(),
        "total_for_sale": _count(PropertyListing.type == ListingType.SALE),
        "total_for_rent": _count(PropertyListing.type == ListingType.RENTAL),
        "total_off_plan": _count(PropertyListing.type == ListingType.OFF_PLAN),
        "popular_locations": [{"name": name, "count": n} for name, n in locations],
    }


def featured_listings(db: Session, limit: Optional[int] = None) -> List[PropertyListing]:
    """Featured listings first, topped up with the most viewed."""
    limit = limit or FEATURED_LIMIT
    available = PropertyListing.status == PropertyStatus.AVAILABLE
    featured = (
        db.query(PropertyListing)
        .filter(available, PropertyListing.featured.is_(True))
        .order_by(PropertyListing.created_at.desc())
        .limit(limit)
        .all()
    )
    if len(featured) < limit:
        query = db.query(PropertyListing).filter(available)
        if featured:
            query = query.filter(PropertyListing.id.notin_([p.id for p in featured]))
        featured += (
            query.order_by(PropertyListing.view_count.desc(), PropertyListing.created_at.desc())
            .limit(limit - len(featured))
            .all()
        )
    return featured

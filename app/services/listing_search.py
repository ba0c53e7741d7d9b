"""
Listing query composer.

Turns client-supplied filter/sort parameters into one bounded, paginated
query over ``property_listings``. Unknown enum values (type, property type,
furnishing, status, sort) are treated as unspecified rather than rejected.
"""

import enum
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.property import (
    PropertyListing, ListingType, PropertyType, Furnishing, PropertyStatus
)
from app.services.validation import clamp_limit, check_offset
from app.utils.parsing import parse_enum


class SortKey(str, enum.Enum):
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    POPULAR = "popular"
    AREA_DESC = "area_desc"


# Applied after every primary key so repeated calls paginate identically.
TIE_BREAK = (PropertyListing.created_at.desc(), PropertyListing.id.asc())

_PRIMARY_ORDER = {
    SortKey.NEWEST: (),
    SortKey.PRICE_ASC: (PropertyListing.price_numeric.asc(),),
    SortKey.PRICE_DESC: (PropertyListing.price_numeric.desc(),),
    SortKey.POPULAR: (PropertyListing.view_count.desc(),),
    SortKey.AREA_DESC: (PropertyListing.area_numeric.desc(),),
}


@dataclass
class ListingFilters:
    type: Optional[ListingType] = None
    property_type: Optional[PropertyType] = None
    location: Optional[str] = None
    bedrooms: Optional[int] = None
    furnishing: Optional[Furnishing] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_area: Optional[int] = None
    max_area: Optional[int] = None
    featured: Optional[bool] = None
    broker_id: Optional[UUID] = None
    status: Optional[PropertyStatus] = PropertyStatus.AVAILABLE

    @classmethod
    def from_query(
        cls,
        type=None,
        property_type=None,
        location=None,
        bedrooms=None,
        furnishing=None,
        min_price=None,
        max_price=None,
        min_area=None,
        max_area=None,
        featured=None,
        broker_id=None,
        status=None,
    ) -> "ListingFilters":
        """Build filters from raw query-string values, dropping unknown enum values."""
        return cls(
            type=parse_enum(ListingType, type),
            property_type=parse_enum(PropertyType, property_type),
            location=location.strip() if location and location.strip() else None,
            bedrooms=bedrooms,
            furnishing=parse_enum(Furnishing, furnishing),
            min_price=min_price,
            max_price=max_price,
            min_area=min_area,
            max_area=max_area,
            featured=featured,
            broker_id=broker_id,
            status=parse_enum(PropertyStatus, status) or PropertyStatus.AVAILABLE,
        )


@dataclass
class ListingPage:
    items: List[PropertyListing] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    limit: int = 0
    offset: int = 0


def parse_sort(raw) -> SortKey:
    return parse_enum(SortKey, raw) or SortKey.NEWEST


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_conditions(filters: ListingFilters) -> list:
    conditions = []
    if filters.status is not None:
        conditions.append(PropertyListing.status == filters.status)
    if filters.type is not None:
        conditions.append(PropertyListing.type == filters.type)
    if filters.property_type is not None:
        conditions.append(PropertyListing.property_type == filters.property_type)
    if filters.location:
        conditions.append(
            PropertyListing.location.ilike(f"%{_escape_like(filters.location)}%", escape="\\")
        )
    if filters.bedrooms is not None:
        conditions.append(PropertyListing.bedrooms == filters.bedrooms)
    if filters.furnishing is not None:
        conditions.append(PropertyListing.furnishing == filters.furnishing)
    if filters.min_price is not None:
        conditions.append(PropertyListing.price_numeric >= filters.min_price)
    if filters.max_price is not None:
        conditions.append(PropertyListing.price_numeric <= filters.max_price)
    if filters.min_area is not None:
        conditions.append(PropertyListing.area_numeric >= filters.min_area)
    if filters.max_area is not None:
        conditions.append(PropertyListing.area_numeric <= filters.max_area)
    if filters.featured:
        conditions.append(PropertyListing.featured.is_(True))
    if filters.broker_id is not None:
        conditions.append(PropertyListing.broker_id == filters.broker_id)
    return conditions


def order_clauses(sort: SortKey) -> tuple:
    return _PRIMARY_ORDER[sort] + TIE_BREAK


def search(
    db: Session,
    filters: Optional[ListingFilters] = None,
    sort=SortKey.NEWEST,
    limit: Optional[int] = None,
    offset: Optional[int] = 0,
) -> ListingPage:
    filters = filters or ListingFilters()
    sort = parse_sort(sort)
    limit = clamp_limit(limit, settings.LISTING_PAGE_DEFAULT, settings.LISTING_PAGE_MAX)
    offset = check_offset(offset)

    query = db.query(PropertyListing).filter(*build_conditions(filters))
    total = query.count()
    items = query.order_by(*order_clauses(sort)).offset(offset).limit(limit).all()

    return ListingPage(
        items=items,
        total=total,
        has_more=offset + len(items) < total,
        limit=limit,
        offset=offset,
    )

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from app.models.property import ListingType, PropertyType, Furnishing, PropertyStatus


def _clean_urls(urls: Optional[List[str]]) -> Optional[List[str]]:
    if urls is None:
        return None
    cleaned = [u.strip() for u in urls if u and u.strip()]
    for url in cleaned:
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"'{url}' is not an http(s) URL")
    return cleaned


# ─── Broker Brief ─────────────────────────────────────────────────────────────
# Embedded in listing responses so cards can show who is selling.

class ListingBroker(BaseModel):
    id: UUID
    name: str
    photo_url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    is_verified: bool = False
    agency_id: Optional[UUID] = None

    model_config = {"from_attributes": True}


# ─── Listing Base ─────────────────────────────────────────────────────────────

class ListingBase(BaseModel):
    type: ListingType
    property_type: PropertyType = PropertyType.APARTMENT
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    location: str = Field(..., min_length=1)
    building: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    price: str = Field(..., min_length=1)     # human-readable, e.g. "AED 2,500,000"
    payment_plan: Optional[str] = None
    bedrooms: int = Field(..., ge=0)          # 0 = studio
    bathrooms: int = Field(..., ge=0)
    area: str = Field(..., min_length=1)      # human-readable, e.g. "1,450 sq ft"
    furnishing: Optional[Furnishing] = None
    completion_year: Optional[int] = None
    permit_number: Optional[str] = None
    amenities: List[str] = []
    features: List[str] = []
    video_url: Optional[str] = None
    floor_plan_url: Optional[str] = None


# ─── Create / Update ──────────────────────────────────────────────────────────

class ListingCreate(ListingBase):
    images: List[str] = Field(..., min_length=1)
    status: PropertyStatus = PropertyStatus.AVAILABLE

    @field_validator("images")
    @classmethod
    def images_must_be_urls(cls, v):
        cleaned = _clean_urls(v)
        if not cleaned:
            raise ValueError("At least one image URL is required")
        return cleaned


class ListingUpdate(BaseModel):
    """Partial update; omitted fields are left as they are."""
    type: Optional[ListingType] = None
    property_type: Optional[PropertyType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1)
    building: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    price: Optional[str] = Field(None, min_length=1)
    payment_plan: Optional[str] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[str] = Field(None, min_length=1)
    furnishing: Optional[Furnishing] = None
    completion_year: Optional[int] = None
    permit_number: Optional[str] = None
    amenities: Optional[List[str]] = None
    features: Optional[List[str]] = None
    images: Optional[List[str]] = None
    video_url: Optional[str] = None
    floor_plan_url: Optional[str] = None
    status: Optional[PropertyStatus] = None

    @field_validator("images")
    @classmethod
    def images_must_be_urls(cls, v):
        return _clean_urls(v)


# ─── Response Schemas ─────────────────────────────────────────────────────────

class ListingResponse(ListingBase):
    id: UUID
    reference_number: str
    price_numeric: int
    area_numeric: int
    images: List[str] = []
    status: PropertyStatus
    featured: bool = False
    view_count: int = 0
    broker_id: UUID
    broker: Optional[ListingBroker] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("amenities", "features", "images", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class ListingSearchResponse(BaseModel):
    items: List[ListingResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class OtherBrokerResponse(BaseModel):
    id: UUID
    name: str
    photo_url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    verified: bool
    rating: float
    review_count: int
    properties_in_area: int


class LocationCount(BaseModel):
    name: str
    count: int


class ListingStatsResponse(BaseModel):
    total_properties: int
    total_for_sale: int
    total_for_rent: int
    total_off_plan: int
    popular_locations: List[LocationCount] = []

from sqlalchemy import Column, String, Integer, BigInteger, Float, Boolean, Text, Enum, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates
from app.models.base import BaseModel
from app.utils.parsing import parse_numeric
import enum

class ListingType(str, enum.Enum):
    SALE = "sale"
    RENTAL = "rental"
    OFF_PLAN = "off-plan"

class PropertyType(str, enum.Enum):
    APARTMENT = "apartment"
    VILLA = "villa"
    TOWNHOUSE = "townhouse"
    PENTHOUSE = "penthouse"
    LAND = "land"
    OFFICE = "office"
    STUDIO = "studio"

class Furnishing(str, enum.Enum):
    FURNISHED = "Furnished"
    UNFURNISHED = "Unfurnished"
    SEMI_FURNISHED = "Semi-Furnished"

class PropertyStatus(str, enum.Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    RESERVED = "reserved"
    REMOVED = "removed"

class PropertyListing(BaseModel):
    __tablename__ = "property_listings"

    reference_number = Column(String(20), unique=True, nullable=False)

    # Basic Info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(ListingType), nullable=False)
    property_type = Column(Enum(PropertyType), nullable=False, default=PropertyType.APARTMENT)
    status = Column(Enum(PropertyStatus), nullable=False, default=PropertyStatus.AVAILABLE, index=True)

    # Location (coordinates are stored, never queried)
    location = Column(String(150), nullable=False, index=True)
    building = Column(String(150), nullable=True)
    address = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Pricing: human-readable string plus derived number for filtering/sorting
    price = Column(String(50), nullable=False)
    price_numeric = Column(BigInteger, nullable=False, default=0, index=True)
    payment_plan = Column(String(255), nullable=True)

    # Property Details
    bedrooms = Column(Integer, nullable=False, default=0)  # 0 = studio
    bathrooms = Column(Integer, nullable=False, default=0)
    area = Column(String(50), nullable=False)
    area_numeric = Column(Integer, nullable=False, default=0)
    furnishing = Column(Enum(Furnishing), nullable=True)
    completion_year = Column(Integer, nullable=True)
    permit_number = Column(String(50), nullable=True)

    # Ordered string sequences
    amenities = Column(JSON, default=list)
    features = Column(JSON, default=list)
    images = Column(JSON, default=list)

    # Media (URLs only)
    video_url = Column(String(500), nullable=True)
    floor_plan_url = Column(String(500), nullable=True)

    # Views/Engagement
    featured = Column(Boolean, default=False)
    view_count = Column(Integer, default=0, nullable=False)

    # Relationships
    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    broker = relationship("Broker", back_populates="listings")

    # Every write to price/area re-derives the numeric column.
    @validates("price")
    def _derive_price_numeric(self, key, value):
        self.price_numeric = parse_numeric(value)
        return value

    @validates("area")
    def _derive_area_numeric(self, key, value):
        self.area_numeric = parse_numeric(value)
        return value

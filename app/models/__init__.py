"""
Database models for the marketplace.
Importing this package registers every table on ``Base.metadata``.
"""

from app.models.user import User, UserRole, UserStatus
from app.models.broker import Broker, BrokerType, VerificationStatus
from app.models.verification import VerificationRequest
from app.models.property import (
    PropertyListing, ListingType, PropertyType, Furnishing, PropertyStatus
)
from app.models.agency import (
    Agency, AgencyJoinRequest, AgencyInvite, RecruitmentOffer, AgencyReview,
    JoinRequestStatus, InviteStatus, OfferStatus,
)
from app.models.review import TransactionClaim, Review, ClaimStatus, ReviewStatus
from app.models.message import Conversation, Message
from app.models.analytics import ProfileView

__all__ = [
    "User", "UserRole", "UserStatus",
    "Broker", "BrokerType", "VerificationStatus",
    "VerificationRequest",
    "PropertyListing", "ListingType", "PropertyType", "Furnishing", "PropertyStatus",
    "Agency", "AgencyJoinRequest", "AgencyInvite", "RecruitmentOffer", "AgencyReview",
    "JoinRequestStatus", "InviteStatus", "OfferStatus",
    "TransactionClaim", "Review", "ClaimStatus", "ReviewStatus",
    "Conversation", "Message",
    "ProfileView",
]

"""Broker profile edits and the derived completeness score."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.broker import Broker
from app.services.validation import is_blank

logger = logging.getLogger(__name__)

# field -> weight; weights sum to 100
COMPLETENESS_WEIGHTS = {
    "name": 10,
    "photo_url": 15,
    "whatsapp_number": 10,
    "bio": 10,
    "license_number": 10,
    "rera_id": 10,
    "experience_years": 10,
    "languages": 10,
    "specialties": 5,
    "areas_of_operation": 10,
}

PROFILE_FIELDS = (
    "name", "photo_url", "whatsapp_number", "bio", "company_name",
    "license_number", "rera_id", "experience_years", "emirates_id",
    "languages", "specialties", "areas_of_operation",
)


def compute_completeness(broker: Broker) -> int:
    score = sum(
        weight for field, weight in COMPLETENESS_WEIGHTS.items()
        if not is_blank(getattr(broker, field, None))
    )
    return min(score, 100)


def apply_profile_fields(broker: Broker, data: dict) -> None:
    """Copy recognised, non-None profile fields onto ``broker`` and rescore it."""
    for field in PROFILE_FIELDS:
        if field in data and data[field] is not None:
            value = data[field]
            # Empty string clears an optional URL/text field.
            if isinstance(value, str) and not value.strip() and field != "name":
                value = None
            if isinstance(value, (list, tuple)):
                value = list(value)
            setattr(broker, field, value)
    broker.profile_completeness_score = compute_completeness(broker)


def update_profile(db: Session, broker: Broker, data: dict) -> Broker:
    try:
        apply_profile_fields(broker, data)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(broker)
    logger.info("Broker %s profile updated (score=%s)", broker.id, broker.profile_completeness_score)
    return broker

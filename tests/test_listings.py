import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import NotFoundError
from app.models import PropertyStatus
from app.services import listings


def test_public_lookup_hides_removed_listing(db, make_broker, make_listing):
    listing = make_listing(make_broker())
    listings.remove_listing(db, listing)

    with pytest.raises(NotFoundError):
        listings.get_listing(db, listing.id, public=True)
    assert listings.get_listing(db, listing.id).status == PropertyStatus.REMOVED


def test_view_count_failure_rolls_back(db, make_broker, make_listing, monkeypatch):
    listing = make_listing(make_broker())

    def failing_commit():
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(SQLAlchemyError):
        listings.record_view(db, listing)
    monkeypatch.undo()

    db.refresh(listing)
    assert listing.view_count == 0

from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.analytics import ProfileView
from app.schemas.analytics import ProfileViewSummary
from app.services.directory import get_broker
from app.api.deps import get_current_user, get_current_active_user

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.post("/profile-view/{broker_id}", response_model=dict)
async def record_profile_view(
    broker_id: UUID,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user),
):
    """Anonymous views are recorded with no viewer."""
    broker = get_broker(db, broker_id)
    db.add(ProfileView(broker_id=broker.id, viewer_id=current_user.id if current_user else None))
    db.commit()
    return {"success": True}


@router.get(
    "/profile-view/{broker_id}/summary",
    response_model=ProfileViewSummary,
    response_model_exclude_none=True,
)
async def profile_view_summary(
    broker_id: UUID,
    range: str = Query("today"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    broker = get_broker(db, broker_id)
    if current_user.role != UserRole.ADMIN and broker.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    now = datetime.utcnow()
    start_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    base = db.query(ProfileView).filter(ProfileView.broker_id == broker.id)

    if range == "today":
        return ProfileViewSummary(today=base.filter(ProfileView.viewed_at >= start_today).count())
    if range == "7d":
        return ProfileViewSummary(
            last_7_days=base.filter(ProfileView.viewed_at >= now - timedelta(days=7)).count()
        )
    return ProfileViewSummary(
        today=base.filter(ProfileView.viewed_at >= start_today).count(),
        last_7_days=base.filter(ProfileView.viewed_at >= now - timedelta(days=7)).count(),
        total=base.count(),
    )

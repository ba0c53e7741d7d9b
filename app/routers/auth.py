import logging
import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.broker import Broker
from app.models.agency import Agency
from app.schemas.user import (
    SignupRequest, UserLogin, TokenResponse, UserResponse, ChangePasswordRequest,
    ForceChangePasswordRequest, PasswordResetRequest, PasswordResetConfirm, PasswordResetIssued,
)
from app.services.profiles import compute_completeness
from app.core.config import settings
from app.utils.auth import (
    get_password_hash, verify_password, create_access_token,
    create_reset_token, read_reset_token, reset_token_matches,
)
from app.utils.parsing import slugify
from app.api.deps import get_current_active_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def user_response(user: User) -> UserResponse:
    agency_id = None
    if user.owned_agency is not None:
        agency_id = user.owned_agency.id
    elif user.broker is not None:
        agency_id = user.broker.agency_id
    return UserResponse(
        id=user.id,
        email=user.email,
        phone=user.phone,
        role=user.role,
        status=user.status,
        broker_id=user.broker.id if user.broker else None,
        agency_id=agency_id,
        must_change_password=bool(user.must_change_password),
        created_at=user.created_at,
    )


def _issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role.value})


def _authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()

    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.status.value}"
        )
    return user


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: SignupRequest, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    if data.create_agency and data.role == UserRole.BROKER and not data.agency_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Agency name is required"
        )

    user = User(
        email=data.email,
        phone=data.phone,
        password_hash=get_password_hash(data.password),
        role=data.role,
    )
    db.add(user)
    db.flush()  # need user.id for the profile rows

    # Brokers start with an unsubmitted profile, hidden from the directory
    if data.role == UserRole.BROKER:
        broker = Broker(
            user_id=user.id,
            name=data.name or "New Simsar",
            whatsapp_number=data.phone,
            languages=[],
            specialties=[],
            areas_of_operation=[],
        )
        broker.profile_completeness_score = compute_completeness(broker)
        db.add(broker)

        if data.create_agency and data.agency_name:
            db.add(Agency(
                owner_id=user.id,
                name=data.agency_name,
                slug=f"{slugify(data.agency_name)}-{uuid.uuid4().hex[:4]}",
                bio=data.agency_bio,
                rera_license_number=data.agency_rera_license,
                website=data.agency_website or None,
            ))
            broker.company_name = data.agency_name

    db.commit()
    db.refresh(user)
    logger.info("New %s account %s", user.role.value, user.id)

    return TokenResponse(access_token=_issue_token(user), user=user_response(user))


@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin, db: Session = Depends(get_db)):
    user = _authenticate(db, data.email, data.password)
    user.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return TokenResponse(access_token=_issue_token(user), user=user_response(user))


@router.post("/token", response_model=dict)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """OAuth2 compatible token endpoint for Swagger UI"""
    user = _authenticate(db, form_data.username, form_data.password)
    return {
        "access_token": _issue_token(user),
        "token_type": "bearer"
    }


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
):
    return user_response(current_user)


@router.post("/change-password", response_model=dict)
async def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect"
        )

    current_user.password_hash = get_password_hash(data.new_password)
    current_user.must_change_password = False
    db.commit()
    return {"success": True, "message": "Password changed"}


@router.post("/force-change-password", response_model=dict)
async def force_change_password(
    data: ForceChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """First-login password for accounts an agency created with a temporary one."""
    if not current_user.must_change_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password change not required"
        )

    current_user.password_hash = get_password_hash(data.new_password)
    current_user.must_change_password = False
    db.commit()
    return {"success": True, "message": "Password set"}


# ─── PASSWORD RESET ───────────────────────────────────────────────────────────

def _user_for_reset_token(db: Session, token: str) -> User:
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid or expired reset token"
    )
    payload = read_reset_token(token)
    if payload is None:
        raise invalid
    try:
        user = db.get(User, uuid.UUID(payload["sub"]))
    except ValueError:
        raise invalid
    if user is None or not reset_token_matches(payload, user.password_hash):
        raise invalid
    return user


@router.post("/request-reset", response_model=PasswordResetIssued)
async def request_password_reset(data: PasswordResetRequest, db: Session = Depends(get_db)):
    """Same answer whether or not the email exists. Mail delivery is not wired up."""
    issued = PasswordResetIssued(message="If the email exists, a reset link has been sent")
    user = db.query(User).filter(User.email == data.email).first()
    if user is None:
        return issued

    token = create_reset_token(str(user.id), user.password_hash)
    logger.info("Password reset requested for user %s", user.id)
    if settings.DEBUG:
        issued.reset_token = token
    return issued


@router.get("/verify-reset-token/{token}", response_model=dict)
async def verify_reset_token(token: str, db: Session = Depends(get_db)):
    _user_for_reset_token(db, token)
    return {"valid": True}


@router.post("/reset-password", response_model=dict)
async def reset_password(data: PasswordResetConfirm, db: Session = Depends(get_db)):
    user = _user_for_reset_token(db, data.token)
    user.password_hash = get_password_hash(data.new_password)
    user.must_change_password = False
    db.commit()
    logger.info("Password reset completed for user %s", user.id)
    return {"success": True, "message": "Password has been reset"}

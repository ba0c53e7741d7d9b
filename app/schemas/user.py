from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import datetime
from app.models.user import UserRole, UserStatus
import re


def normalize_phone(phone: str) -> str:
    phone = re.sub(r'[\s\-()]', '', phone)
    if not re.match(r'^\+?\d{7,15}$', phone):
        raise ValueError('Invalid phone number')
    return phone


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.USER
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None

    # Optional agency creation for brokers
    create_agency: bool = False
    agency_name: Optional[str] = Field(None, min_length=2)
    agency_bio: Optional[str] = None
    agency_rera_license: Optional[str] = None
    agency_website: Optional[str] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v) if v else v

    @field_validator('role')
    @classmethod
    def no_admin_signup(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError('Admin accounts cannot be self-registered')
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    id: UUID
    email: EmailStr
    phone: Optional[str] = None
    role: UserRole
    status: UserStatus
    broker_id: Optional[UUID] = None
    agency_id: Optional[UUID] = None
    must_change_password: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserStatusUpdate(BaseModel):
    status: UserStatus


class ForceChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class PasswordResetIssued(BaseModel):
    success: bool = True
    message: str
    # only outside production, where no mail goes out
    reset_token: Optional[str] = None

from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    BROKER = "BROKER"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    BANNED = "banned"
    SUSPENDED = "suspended"


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(100), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)

    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    status = Column(Enum(UserStatus), nullable=False, default=UserStatus.ACTIVE)

    must_change_password = Column(Boolean, default=False)
    last_login_at = Column(DateTime, nullable=True)

    broker = relationship("Broker", back_populates="user", uselist=False)
    owned_agency = relationship(
        "Agency",
        back_populates="owner",
        uselist=False,
        foreign_keys="Agency.owner_id",
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

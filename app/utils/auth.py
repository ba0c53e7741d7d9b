import hashlib
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# Password reset tokens are signed like access tokens but carry a purpose and a
# fingerprint of the current hash, so they stop working once the password changes.
RESET_PURPOSE = "password_reset"


def _password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


def create_reset_token(user_id: str, password_hash: str) -> str:
    return create_access_token(
        data={"sub": user_id, "purpose": RESET_PURPOSE, "pwd": _password_fingerprint(password_hash)},
        expires_delta=timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
    )


def read_reset_token(token: str) -> Optional[dict]:
    payload = decode_token(token)
    if not payload or payload.get("purpose") != RESET_PURPOSE or not payload.get("sub"):
        return None
    return payload


def reset_token_matches(payload: dict, password_hash: str) -> bool:
    return payload.get("pwd") == _password_fingerprint(password_hash)

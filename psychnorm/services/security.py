from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, HTTPException
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from psychnorm.core.config import settings
from psychnorm.db.repositories import UserRepository
from psychnorm.i18n.pt_messages import SecurityMessages
from psychnorm.models import User


@dataclass(frozen=True, slots=True)
class OwnerContext:
    """The authenticated practitioner on whose behalf a calculation runs."""

    owner_id: int
    role: str

    @classmethod
    def from_user(cls, user: User) -> "OwnerContext":
        return cls(owner_id=user.id, role=user.role)


def create_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed HS256 token carrying sub, exp, nbf, iss and aud claims."""
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    to_encode = {
        "sub": subject,
        "exp": expire,
        "nbf": now,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and validate a token; raises ``ValueError`` on any failure."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iss": True,
                "verify_aud": True,
                "leeway": 5,  # seconds of clock skew
            },
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    except JWTError as e:
        raise ValueError(f"Invalid JWT token: {e}") from e
    if "sub" not in payload:
        raise ValueError("Token missing 'sub' claim (user identifier)")
    return payload


def get_current_user(authorization: str | None = Header(default=None), db: Session | None = None) -> User:
    """Resolve the ``Authorization: Bearer <token>`` header to a user, or fail with 401."""
    if not authorization:
        raise HTTPException(status_code=401, detail=SecurityMessages.MISSING_AUTHORIZATION)

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail=SecurityMessages.INVALID_AUTHORIZATION)

    try:
        payload = decode_access_token(parts[1])
        user_id = int(payload["sub"])
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except (KeyError, TypeError):
        raise HTTPException(status_code=401, detail=SecurityMessages.INVALID_PAYLOAD)

    if db is None:
        raise HTTPException(status_code=500, detail="Database session not provided")

    user = UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail=SecurityMessages.USER_NOT_FOUND)
    return user


def get_owner(authorization: str | None = Header(default=None), db: Session | None = None) -> OwnerContext:
    return OwnerContext.from_user(get_current_user(authorization, db))

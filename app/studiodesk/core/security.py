from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import BaseModel, field_validator

from app.studiodesk.core.config import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/studiodesk/auth/token", auto_error=False)


class TokenData(BaseModel):
    sub: str
    firm_id: str | None = None
    role: str | None = None
    email: str | None = None

    @field_validator("sub", "firm_id")
    @classmethod
    def _canonical_uuid(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return str(UUID(str(value)))


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_profile_access_token(profile, firm_id=None, expires_delta: Optional[timedelta] = None) -> str:
    workspace = firm_id if firm_id is not None else profile.firm_id
    return create_access_token(
        {
            "sub": str(profile.id),
            "firm_id": str(workspace) if workspace else None,
            "role": profile.role,
            "email": profile.email,
        },
        expires_delta=expires_delta,
    )

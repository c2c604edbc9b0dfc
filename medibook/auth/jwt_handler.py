from datetime import datetime, timedelta, timezone

import jwt

from medibook.auth.principal import Principal, Role
from medibook.core import config

def create_access_token(principal: Principal, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {
        "sub": str(principal.id),
        "role": principal.role.value,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


def principal_from_payload(payload: dict) -> Principal:
    """Raises KeyError or ValueError when the claims do not describe a principal."""
    return Principal(id=int(payload["sub"]), role=Role(payload["role"]))

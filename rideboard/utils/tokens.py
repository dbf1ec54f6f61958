"""Access token helpers (HS256 JWTs issued by the identity provider)."""
from __future__ import annotations

from datetime import datetime, timedelta, UTC
from typing import Any
from uuid import UUID

import jwt

from rideboard.config import get_settings


def create_access_token(subject_id: UUID, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Encode an access token for ``subject_id``.

    Tokens are normally minted by the identity provider; this is used by
    tooling and tests that share the signing secret.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    payload: dict[str, Any] = {"sub": str(subject_id), "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify an access token.

    Raises jwt.ExpiredSignatureError or other jwt.InvalidTokenError subclasses.
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["exp", "sub"]},
    )

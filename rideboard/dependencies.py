"""FastAPI dependencies."""
import logging

import jwt
from fastapi import Header, HTTPException, Request
from uuid import UUID

from rideboard.config import get_settings
from rideboard.utils.tokens import decode_access_token

logger = logging.getLogger(__name__)


def _mask_identifier(identifier: str) -> str:
    """Mask a sensitive identifier for logging (e.g., subject id, token)."""
    if not identifier:
        return "<missing>"
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


async def get_current_subject_id(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
) -> UUID:
    """Resolve the authenticated subject from a JWT access token.

    Checks for access token in the following order:
    1. HTTP-only cookie
    2. Authorization header (API clients)
    """
    settings = get_settings()

    token = request.cookies.get(settings.access_token_cookie_name)

    if not token and authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise HTTPException(status_code=401, detail="invalid_authorization_header")

    if not token:
        raise HTTPException(status_code=401, detail="missing_credentials")

    try:
        payload = decode_access_token(token)
        subject_id = UUID(str(payload.get("sub")))
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="token_expired") from exc
    except (jwt.InvalidTokenError, ValueError) as exc:
        logger.info(f"Rejected access token {_mask_identifier(token)}: {exc}")
        raise HTTPException(status_code=401, detail="invalid_token") from exc

    return subject_id

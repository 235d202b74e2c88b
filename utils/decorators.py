from __future__ import annotations
from datetime import datetime
from functools import wraps
import logging

from flask import current_app, g, request

from utils.errors import TokenError, UnauthenticatedError
from utils.security import TokenCodec, utcnow

logger = logging.getLogger(__name__)


def resolve_bearer(header_value: str | None, codec: TokenCodec, now: datetime) -> str:
    """
    Turn a raw Authorization header into the authenticated user id.
    Missing/malformed header, bad signature and expiry all end up as the same
    UnauthenticatedError; the store is never touched.
    """
    if not header_value:
        raise UnauthenticatedError("Missing Authorization header")
    parts = header_value.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise UnauthenticatedError("Missing or invalid Authorization header")
    try:
        return codec.verify_access(parts[1].strip(), now)
    except TokenError as exc:
        logger.debug("Rejected access token: %s", exc)
        raise UnauthenticatedError("Invalid or expired access token") from exc


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            codec = current_app.extensions["token_codec"]
            g.current_user_id = resolve_bearer(request.headers.get("Authorization"), codec, utcnow())
            return fn(*args, **kwargs)

        return wrapper

    return decorator

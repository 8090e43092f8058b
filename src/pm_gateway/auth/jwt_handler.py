"""JWT token creation and verification.

The ``sub`` claim is the caller identity the engine sees (proposer, trader,
guardian). HS256 with a shared JWT_SECRET; no refresh tokens, no revocation.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.errors import InvalidTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(caller_id: str) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": caller_id,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidTokenError: bad signature, expired, wrong type or missing ``sub``.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidTokenError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidTokenError()
    return payload

"""FastAPI dependency: get_caller_id.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import get_caller_id

    @router.post("/protected")
    async def protected(caller_id: str = Depends(get_caller_id)):
        ...
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.pm_common.errors import InvalidTokenError
from src.pm_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_caller_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Return the ``sub`` of a valid Bearer token; 401 otherwise."""
    if credentials is None:
        raise InvalidTokenError()
    payload = decode_token(credentials.credentials)
    return payload["sub"]

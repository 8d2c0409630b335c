"""Bearer-token role checks for admin endpoints.

Tokens are configured via ADMIN_API_TOKENS (token -> role).
"""

import hmac
import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from buyback.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")

ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"

_bearer = HTTPBearer(auto_error=False)


def _role_for_token(token: str, tokens: dict[str, str]) -> str | None:
    for known, role in tokens.items():
        if hmac.compare_digest(known.encode(), token.encode()):
            return role
    return None


def require_role(*roles: str) -> Callable:
    """Dependency factory: the request must carry a token with one of `roles`.

    Returns the caller's role so handlers can log it.
    """
    allowed = {r.upper() for r in roles}

    async def dependency(
        credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
        settings: Settings = Depends(get_settings),
    ) -> str:
        if credentials is None or not credentials.credentials:
            raise HTTPException(status_code=401, detail="Unauthorized - missing bearer token")

        role = _role_for_token(credentials.credentials, settings.admin_api_tokens)
        if role is None:
            raise HTTPException(status_code=401, detail="Unauthorized - unknown token")

        if role not in allowed:
            logger.warning(f"Forbidden: role={role} required={sorted(allowed)}")
            raise HTTPException(status_code=403, detail="Forbidden - insufficient role")

        return role

    return dependency

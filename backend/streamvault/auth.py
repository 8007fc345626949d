"""
Shared-secret authentication.

There are no user accounts. Whoever knows ACCESS_KEY can log in; login
sets a flag in the signed session cookie. Scripts can skip the cookie and
send ``Authorization: Bearer <API_BEARER_TOKEN>`` instead.
"""

import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from streamvault.config import settings

security = HTTPBearer(auto_error=False)

SESSION_FLAG = "authenticated"


def secrets_match(supplied: str, expected: str) -> bool:
    """Constant-time compare. An unset secret never matches."""
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode(), expected.encode())


def is_authenticated(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = None,
) -> bool:
    if request.session.get(SESSION_FLAG):
        return True
    if credentials is not None:
        return secrets_match(credentials.credentials, settings.API_BEARER_TOKEN)
    return False


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> None:
    """Gate for every business endpoint."""
    if not is_authenticated(request, credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

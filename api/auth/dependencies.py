"""FastAPI dependencies for authentication.

The caller is identified by a Bearer token whose "sub" claim is the
profile ID. Whether the profile exists is checked by the services that
need it (they answer 404 rather than 401).
"""

from dataclasses import dataclass
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.auth.jwt import verify_token
from clinicdesk.logging import bind_context


# Security scheme for JWT Bearer tokens
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller."""

    user_id: UUID
    email: Optional[str] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Extract and validate the caller from the Authorization header.

    Raises:
        HTTPException 401: Missing token, invalid or expired token, or a
            token without a usable "sub" claim
    """
    if not credentials:
        raise _unauthorized("Missing authentication credentials")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid user ID in token")

    bind_context(user_id=str(user_id))
    return CurrentUser(user_id=user_id, email=payload.get("email"))


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]

# backend/toolforge/core/auth.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from toolforge.core.config import settings
from toolforge.core.session import SessionProvider
from toolforge.exceptions import AuthenticationRequiredError
from toolforge.schemas.auth import Identity

http_bearer = HTTPBearer(auto_error=False)

ALGORITHMS = ["HS256"]


def get_session_provider(request: Request) -> SessionProvider:
    return request.app.state.session_provider


def get_bearer_token(creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)) -> Optional[str]:
    return creds.credentials if creds is not None else None


def decode_access_token(token: str) -> Identity:
    """Verify a Supabase access token and return the identity it carries."""
    if not settings.SUPABASE_JWT_SECRET:
        raise AuthenticationRequiredError("Bearer tokens cannot be verified: SUPABASE_JWT_SECRET is not set.")
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=ALGORITHMS,
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as e:
        raise AuthenticationRequiredError(f"Invalid token: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationRequiredError("Invalid token: missing subject.")
    return Identity(id=str(user_id), email=payload.get("email"))


async def get_current_identity(
    token: Optional[str] = Depends(get_bearer_token),
    provider: SessionProvider = Depends(get_session_provider),
) -> Identity:
    """
    Identity of the caller, taken from the bearer token. Only in single-user
    mode (ALLOW_SESSION_IDENTITY) does a request without a token act as the
    signed-in backend session. Raises 401 when there is no identity.
    """
    if token:
        return decode_access_token(token)
    if not settings.ALLOW_SESSION_IDENTITY or provider.identity is None:
        raise AuthenticationRequiredError()
    return provider.identity

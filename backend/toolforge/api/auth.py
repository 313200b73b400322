# backend/toolforge/api/auth.py
import logging

from fastapi import APIRouter, Depends, status

from toolforge.api.deps import get_clients
from toolforge.core.auth import get_session_provider
from toolforge.core.clients import SupabaseClients
from toolforge.core.session import SessionProvider, identity_from_session
from toolforge.exceptions import AuthenticationRequiredError, BackendError
from toolforge.schemas.auth import SessionState, Token, UserLogin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(user_data: UserLogin, clients: SupabaseClients = Depends(get_clients)):
    """
    Sign in on the shared backend client. The session provider picks the new
    identity up through its auth-state subscription.
    """
    client = await clients.anon()
    try:
        auth_response = await client.auth.sign_in_with_password(
            {"email": user_data.email, "password": user_data.password}
        )
    except Exception as e:
        logger.warning(f"Login failed for user {user_data.email}: {e}")
        raise AuthenticationRequiredError("Incorrect email or password")

    session = auth_response.session
    identity = identity_from_session(session)
    if session is None or identity is None:
        raise AuthenticationRequiredError("Incorrect email or password")

    logger.info(f"User {user_data.email} signed in")
    return Token(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        identity=identity,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(clients: SupabaseClients = Depends(get_clients)):
    client = await clients.anon()
    try:
        await client.auth.sign_out()
    except Exception as e:
        logger.error(f"Sign out failed: {e}", exc_info=True)
        raise BackendError("sign out", str(e))


@router.get("/session", response_model=SessionState)
async def read_session(provider: SessionProvider = Depends(get_session_provider)):
    """Current identity of the shared session and whether it is still loading."""
    return provider.state

# backend/toolforge/core/session.py
import logging
from typing import Any, Optional

from tenacity import retry, stop_after_attempt, wait_fixed, before_log

from toolforge.core.clients import SupabaseClients
from toolforge.core.config import settings
from toolforge.schemas.auth import Identity, SessionState

logger = logging.getLogger(__name__)


def identity_from_session(session: Any) -> Optional[Identity]:
    user = getattr(session, "user", None) if session is not None else None
    if user is None:
        return None
    return Identity(id=str(user.id), email=getattr(user, "email", None))


class SessionProvider:
    """
    Holds the identity of the backend session shared by the application.

    Built once in the application lifespan and handed to request handlers
    through dependencies. `identity` is written by `start()` and afterwards
    only by the auth-state callback.
    """

    def __init__(self, clients: SupabaseClients):
        self.clients = clients
        self.identity: Optional[Identity] = None
        self.is_loading = True
        self._subscription = None

    @property
    def state(self) -> SessionState:
        return SessionState(identity=self.identity, is_loading=self.is_loading)

    @retry(
        stop=stop_after_attempt(settings.SESSION_INIT_RETRY_ATTEMPTS),
        wait=wait_fixed(settings.SESSION_INIT_RETRY_DELAY),
        before=before_log(logger, logging.DEBUG),
        reraise=True,
    )
    async def _fetch_session(self, client):
        return await client.auth.get_session()

    async def start(self) -> None:
        try:
            client = await self.clients.anon()
            session = await self._fetch_session(client)
            self.identity = identity_from_session(session)
            self._subscription = client.auth.on_auth_state_change(self._on_auth_state_change)
            logger.info(f"Session provider started (signed in: {self.identity is not None})")
        except Exception as e:
            # The backend may be unconfigured or down; the app still starts unauthenticated.
            logger.warning(f"Could not load the backend session: {e}")
            self.identity = None
        finally:
            self.is_loading = False

    def _on_auth_state_change(self, event: Any, session: Any) -> None:
        self.identity = identity_from_session(session)
        logger.info(f"Auth state changed: {event} (signed in: {self.identity is not None})")

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.info("Auth state subscription closed.")

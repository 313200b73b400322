# backend/toolforge/core/clients.py
import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI
from supabase import AsyncClient, acreate_client

from toolforge.core.config import Settings, settings as default_settings
from toolforge.exceptions import BackendError

logger = logging.getLogger(__name__)


def create_openai_client(settings: Settings = default_settings) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


class SupabaseClients:
    """
    Builds the backend clients used by the application.

    One anon client is shared for the lifetime of the application (it also owns
    the auth session). Service-role clients are created per privileged call and
    per-user clients per request; neither is cached and both are closed with `release()`.
    """

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self._anon: Optional[AsyncClient] = None
        self._lock = asyncio.Lock()

    async def _create(self, key: str, role: str) -> AsyncClient:
        try:
            return await acreate_client(self.settings.SUPABASE_URL, key)
        except Exception as e:
            logger.error(f"Could not create {role} Supabase client: {e}")
            raise BackendError("connect to the backend", str(e)) from e

    async def anon(self) -> AsyncClient:
        if self._anon is None:
            async with self._lock:
                if self._anon is None:
                    self._anon = await self._create(self.settings.SUPABASE_ANON_KEY, "anon")
                    logger.info("Shared Supabase client created.")
        return self._anon

    async def service(self) -> AsyncClient:
        return await self._create(self.settings.SUPABASE_SERVICE_ROLE_KEY, "service-role")

    async def for_token(self, access_token: str) -> AsyncClient:
        """Client whose database calls run as the owner of `access_token` (row-level security)."""
        client = await self._create(self.settings.SUPABASE_ANON_KEY, "user")
        client.postgrest.auth(access_token)
        return client

    async def release(self, client: AsyncClient) -> None:
        """Closes the HTTP session of a per-call client. The shared client stays open."""
        if client is self._anon:
            return
        try:
            await client.postgrest.aclose()
        except Exception as e:
            logger.warning(f"Could not close Supabase client: {e}")


async def complete_prompt(openai_client: AsyncOpenAI, prompt: str, model: Optional[str] = None) -> str:
    """Sends one user message and returns the text of the first choice."""
    response = await openai_client.chat.completions.create(
        model=model or default_settings.LLM_MODEL,
        messages=[{"role": "user", "content": prompt}],
        temperature=default_settings.LLM_TEMPERATURE,
        top_p=default_settings.LLM_TOP_P,
        max_tokens=default_settings.LLM_MAX_TOKENS,
    )
    content = response.choices[0].message.content
    if not content:
        raise ValueError("Model returned an empty response.")
    return content

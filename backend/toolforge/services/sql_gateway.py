# backend/toolforge/services/sql_gateway.py
import logging
from typing import Optional

from supabase import AsyncClient

from toolforge.core.clients import SupabaseClients
from toolforge.core.config import settings
from toolforge.exceptions import SqlExecutionError
from toolforge.utils.logger import TraceLogger

logger = logging.getLogger(__name__)

PRIVILEGED_MARKER = "create extension"


def requires_privileged(sql: str) -> bool:
    """True when the statement has to run with the service-role key."""
    return PRIVILEGED_MARKER in sql.lower()


class SqlExecutionGateway:
    """
    Forwards SQL text to the backend's `execute_sql` remote procedure.

    This is a pass-through: whatever reaches `execute_sql` is executed. Callers
    running model output are expected to go through `SqlGuard` first.
    """

    def __init__(
        self,
        clients: SupabaseClients,
        trace_logger: Optional[TraceLogger] = None,
        function_name: str = settings.EXECUTE_SQL_FUNCTION,
    ):
        self.clients = clients
        self.trace_logger = trace_logger
        self.function_name = function_name

    async def execute_sql(self, sql: str, client: Optional[AsyncClient] = None) -> None:
        """
        Runs `sql` with `client` (the caller's own backend client). Extension DDL
        always runs with a fresh service-role client, which is closed afterwards.
        Without a client the shared one is used.
        """
        privileged = requires_privileged(sql)
        if privileged:
            client = await self.clients.service()
        elif client is None:
            client = await self.clients.anon()
        path = "service_role" if privileged else "authenticated"
        logger.info(f"Executing SQL through '{self.function_name}' ({path} path, {len(sql)} chars)")

        try:
            await client.rpc(self.function_name, {"sql": sql}).execute()
        except Exception as e:
            logger.error(f"SQL execution error: {e}", exc_info=True)
            if self.trace_logger:
                await self.trace_logger.log_event("sql_execution_failed", {"path": path, "error": str(e)})
            raise SqlExecutionError(getattr(e, "message", None) or str(e)) from e
        finally:
            if privileged:
                await self.clients.release(client)

        if self.trace_logger:
            await self.trace_logger.log_event("sql_executed", {"path": path})

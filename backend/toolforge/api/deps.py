# backend/toolforge/api/deps.py
from typing import AsyncIterator, Optional

from fastapi import Depends, Request
from supabase import AsyncClient

from toolforge.core.auth import get_bearer_token
from toolforge.core.clients import SupabaseClients
from toolforge.services.schema_generator import SchemaGeneratorService
from toolforge.services.visualization import VisualizationService
from toolforge.utils.logger import TraceLogger, trace_logger_service


def get_clients(request: Request) -> SupabaseClients:
    return request.app.state.clients


async def get_db(
    token: Optional[str] = Depends(get_bearer_token),
    clients: SupabaseClients = Depends(get_clients),
) -> AsyncIterator[AsyncClient]:
    """
    Backend client for this request: scoped to the bearer token when one is sent,
    else the shared one. A token-scoped client is closed when the request ends.
    """
    client = await clients.for_token(token) if token else await clients.anon()
    try:
        yield client
    finally:
        await clients.release(client)


def get_schema_generator(request: Request) -> SchemaGeneratorService:
    return request.app.state.schema_generator


def get_visualization_service(request: Request) -> VisualizationService:
    return request.app.state.visualization


def get_trace_logger() -> TraceLogger:
    return trace_logger_service

# backend/toolforge/main.py
from contextlib import asynccontextmanager
from typing import Any, Dict
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolforge.api import auth, records, tools
from toolforge.core.clients import SupabaseClients, create_openai_client
from toolforge.core.config import settings
from toolforge.core.session import SessionProvider
from toolforge.middleware import LoggingMiddleware
from toolforge.services.schema_generator import SchemaGeneratorService
from toolforge.services.sql_gateway import SqlExecutionGateway
from toolforge.services.sql_guard import SqlGuard
from toolforge.services.visualization import VisualizationService
from toolforge.utils.logger import trace_logger_service


# --- Logger Setup ---
trace_logger = trace_logger_service

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.LOG_LEVEL,
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


# --- Lifespan Context Manager ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Application startup initiated.")
    await trace_logger.log_event("app_startup", {"environment": settings.ENVIRONMENT})

    # 1. Backend clients (created lazily on first use)
    clients = SupabaseClients(settings)
    app.state.clients = clients

    # 2. Session/identity provider
    session_provider = SessionProvider(clients)
    await session_provider.start()
    app.state.session_provider = session_provider

    # 3. Schema generation pipeline
    gateway = SqlExecutionGateway(clients, trace_logger=trace_logger)
    sql_guard = SqlGuard(settings.ALLOWED_SQL_EXTENSIONS) if settings.SQL_GUARD_ENABLED else None
    if sql_guard is None:
        logger.warning("SQL guard disabled: generated SQL is executed without validation.")
    openai_client = create_openai_client(settings)
    app.state.schema_generator = SchemaGeneratorService(
        openai_client=openai_client,
        gateway=gateway,
        trace_logger=trace_logger,
        sql_guard=sql_guard,
    )
    app.state.visualization = VisualizationService(openai_client=openai_client, trace_logger=trace_logger)
    logger.info("✅ Services initialized.")

    try:
        yield
    finally:
        logger.info("👋 Application shutdown initiated.")
        await session_provider.stop()
        await trace_logger.log_event("app_shutdown", {"message": "Shutting down."})
        logger.info("👋 Shutdown complete.")


# --- FastAPI App ---
app = FastAPI(
    title="Toolforge",
    description="Generate data-collection tools from a description and manage their records.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
)

# --- Middleware ---
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routers ---
app.include_router(auth.router, prefix=settings.API_V1_STR)
app.include_router(tools.router, prefix=settings.API_V1_STR)
app.include_router(records.router, prefix=settings.API_V1_STR)


@app.get("/", summary="Health Check", response_model=Dict[str, Any])
async def root():
    session_provider = getattr(app.state, "session_provider", None)
    return {
        "message": "Toolforge backend is live",
        "status": "operational",
        "signed_in": bool(session_provider and session_provider.identity),
    }

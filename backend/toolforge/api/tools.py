# backend/toolforge/api/tools.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from supabase import AsyncClient

from toolforge.api.deps import get_db, get_schema_generator, get_trace_logger, get_visualization_service
from toolforge.core.auth import get_current_identity
from toolforge.crud.tool import tool_crud
from toolforge.crud.tool_field import tool_field_crud
from toolforge.crud.tool_record import tool_record_crud
from toolforge.exceptions import RecordNotFoundError, ToolNotFoundError
from toolforge.presentation.form import FormView, build_form
from toolforge.presentation.table import TableView, build_table
from toolforge.schemas.auth import Identity
from toolforge.schemas.dashboard import DashboardConfig
from toolforge.schemas.tool import (
    GenerateToolRequest,
    ToolCreated,
    ToolDetail,
    ToolRead,
    ToolSchema,
    ToolUpdate,
)
from toolforge.services.export import export_records
from toolforge.services.schema_generator import SchemaGeneratorService
from toolforge.services.visualization import VisualizationService
from toolforge.utils.logger import TraceLogger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tools", tags=["Tools"])


async def load_tool(client: AsyncClient, tool_id: str, identity: Identity) -> ToolRead:
    """Fetch a tool the caller owns; anything else is reported as not found."""
    tool = await tool_crud.get(client, tool_id)
    if tool.owner_id and tool.owner_id != identity.id:
        raise ToolNotFoundError(tool_id)
    return tool


def matches_search(tool: ToolRead, search: str) -> bool:
    needle = search.lower()
    return needle in (tool.name or "").lower() or needle in (tool.description or "").lower()


# =====================================================================
# Generation
# =====================================================================

@router.post(
    "/generate",
    response_model=ToolSchema,
    summary="Generate Tool Schema",
    description="Asks the language model for a tool schema and runs its table definition.",
)
async def generate_tool(
    request: GenerateToolRequest,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    generator: SchemaGeneratorService = Depends(get_schema_generator),
):
    """
    **Generate a tool schema from a description.**

    The generated table definition has already been executed when this returns.
    It runs with the caller's credentials; extension DDL uses the service role.
    Nothing is saved; send the (possibly edited) schema to `POST /tools` to keep it.
    """
    logger.info(f"User {identity.id} is generating a tool schema")
    return await generator.generate_tool_schema(request.description, client)


# =====================================================================
# Tool management
# =====================================================================

@router.post("", response_model=ToolCreated, status_code=status.HTTP_201_CREATED)
async def save_tool(
    tool_schema: ToolSchema,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    """
    **Save a generated tool schema** (tool row plus its fields) for the current user.
    """
    tool_id = await tool_crud.create(client, tool_schema, identity.id)
    await trace_logger.log_event("tool_created", {
        "tool_id": tool_id,
        "owner_id": identity.id,
        "field_count": len(tool_schema.fields),
    })
    return ToolCreated(id=tool_id)


@router.get("", response_model=List[ToolRead])
async def list_tools(
    search: Optional[str] = Query(None, description="Case-insensitive match on name or description"),
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
):
    """
    **List the current user's tools**, newest first.
    """
    tools = await tool_crud.get_all(client, identity.id)
    if search:
        tools = [tool for tool in tools if matches_search(tool, search)]
    return tools


@router.get("/{tool_id}", response_model=ToolDetail)
async def read_tool(
    tool_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
):
    tool = await load_tool(client, tool_id, identity)
    fields = await tool_field_crud.get_all(client, tool_id)
    return ToolDetail(tool=tool, fields=fields)


@router.patch("/{tool_id}", response_model=ToolRead)
async def update_tool(
    tool_id: str,
    tool_in: ToolUpdate,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    """
    **Edit a tool's name, description or purpose.**
    """
    await load_tool(client, tool_id, identity)
    tool = await tool_crud.update(client, tool_id, tool_in)
    await trace_logger.log_event("tool_updated", {"tool_id": tool_id, "changes": tool_in.model_dump(exclude_unset=True)})
    return tool


@router.post("/{tool_id}/deploy", response_model=ToolRead)
async def deploy_tool(
    tool_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    """
    **Mark a tool as deployed.** Deploying an already deployed tool is a no-op.
    """
    tool = await load_tool(client, tool_id, identity)
    if not tool.is_deployed:
        tool = await tool_crud.update(client, tool_id, ToolUpdate(is_deployed=True))
        await trace_logger.log_event("tool_deployed", {"tool_id": tool_id})
    return tool


@router.delete("/{tool_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tool(
    tool_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    """
    **Delete a tool.** Its fields and records are removed by the database (cascade).
    """
    await load_tool(client, tool_id, identity)
    await tool_crud.delete(client, tool_id)
    await trace_logger.log_event("tool_deleted", {"tool_id": tool_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =====================================================================
# Presentation
# =====================================================================

@router.get("/{tool_id}/form", response_model=FormView)
async def tool_form(
    tool_id: str,
    record_id: Optional[str] = Query(None, description="Pre-fill the form with this record"),
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
):
    """
    **Form definition for adding (or editing) a record.**
    """
    await load_tool(client, tool_id, identity)
    fields = await tool_field_crud.get_all(client, tool_id)

    initial = None
    if record_id:
        records = await tool_record_crud.get_all(client, tool_id)
        record = next((r for r in records if r.id == record_id), None)
        if record is None:
            raise RecordNotFoundError(record_id)
        initial = record.data
    return build_form(fields, initial)


@router.get("/{tool_id}/table", response_model=TableView)
async def tool_table(
    tool_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=500),
    sort_by: Optional[str] = Query(None, description="Field name to sort by"),
    descending: bool = False,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
):
    """
    **Rendered record table**: one column per field plus actions, sorted and paginated.
    """
    await load_tool(client, tool_id, identity)
    fields = await tool_field_crud.get_all(client, tool_id)
    records = await tool_record_crud.get_all(client, tool_id)
    return build_table(fields, records, page=page, page_size=page_size, sort_by=sort_by, descending=descending)


@router.get("/{tool_id}/export")
async def export_tool_data(
    tool_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
):
    """
    **Download all record data of a tool** as a JSON file.
    """
    tool = await load_tool(client, tool_id, identity)
    records = await tool_record_crud.get_all(client, tool_id)
    file_name, body = export_records(tool, records)
    logger.info(f"Exporting {len(records)} records of tool {tool_id}")
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.post("/{tool_id}/dashboard", response_model=DashboardConfig)
async def generate_dashboard(
    tool_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    visualization: VisualizationService = Depends(get_visualization_service),
):
    """
    **Suggest a visualization** for the tool's records. Needs at least one record.
    """
    tool = await load_tool(client, tool_id, identity)
    fields = await tool_field_crud.get_all(client, tool_id)
    records = await tool_record_crud.get_all(client, tool_id)
    return await visualization.suggest(tool, fields, records)

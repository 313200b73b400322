# backend/toolforge/api/records.py
import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from supabase import AsyncClient

from toolforge.api.deps import get_db, get_trace_logger
from toolforge.api.tools import load_tool
from toolforge.core.auth import get_current_identity
from toolforge.crud.tool_field import tool_field_crud
from toolforge.crud.tool_record import tool_record_crud
from toolforge.exceptions import RecordNotFoundError
from toolforge.presentation.form import validate_submission
from toolforge.schemas.auth import Identity
from toolforge.schemas.tool import RecordCreated, RecordPayload, ToolRecordRead
from toolforge.utils.logger import TraceLogger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tools/{tool_id}/records", tags=["Records"])


async def ensure_record(client: AsyncClient, tool_id: str, record_id: str) -> ToolRecordRead:
    records = await tool_record_crud.get_all(client, tool_id)
    for record in records:
        if record.id == record_id:
            return record
    raise RecordNotFoundError(record_id)


@router.get("", response_model=List[ToolRecordRead])
async def list_records(
    tool_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
):
    """
    **List a tool's records**, newest first.
    """
    await load_tool(client, tool_id, identity)
    return await tool_record_crud.get_all(client, tool_id)


@router.post("", response_model=RecordCreated, status_code=status.HTTP_201_CREATED)
async def create_record(
    tool_id: str,
    payload: RecordPayload,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    """
    **Add a record.** Required fields must have a value; nothing else is checked.
    """
    await load_tool(client, tool_id, identity)
    fields = await tool_field_crud.get_all(client, tool_id)
    data = validate_submission(fields, payload.data)

    record_id = await tool_record_crud.create(client, tool_id, data)
    await trace_logger.log_event("record_created", {"tool_id": tool_id, "record_id": record_id})
    return RecordCreated(id=record_id)


@router.put("/{record_id}", response_model=ToolRecordRead)
async def update_record(
    tool_id: str,
    record_id: str,
    payload: RecordPayload,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    await load_tool(client, tool_id, identity)
    await ensure_record(client, tool_id, record_id)
    fields = await tool_field_crud.get_all(client, tool_id)
    data = validate_submission(fields, payload.data)

    await tool_record_crud.update(client, record_id, data)
    await trace_logger.log_event("record_updated", {"tool_id": tool_id, "record_id": record_id})
    return await ensure_record(client, tool_id, record_id)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    tool_id: str,
    record_id: str,
    identity: Identity = Depends(get_current_identity),
    client: AsyncClient = Depends(get_db),
    trace_logger: TraceLogger = Depends(get_trace_logger),
):
    await load_tool(client, tool_id, identity)
    await ensure_record(client, tool_id, record_id)
    await tool_record_crud.delete(client, record_id)
    await trace_logger.log_event("record_deleted", {"tool_id": tool_id, "record_id": record_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)

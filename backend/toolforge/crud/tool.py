# backend/toolforge/crud/tool.py
import logging
from typing import Any, Dict, List

from supabase import AsyncClient

from toolforge.exceptions import BackendError, ToolNotFoundError
from toolforge.schemas.tool import ToolRead, ToolSchema, ToolUpdate

logger = logging.getLogger(__name__)

TOOL_COLUMNS = "*, tool_fields(id), tool_records(id)"

# Postgres invalid_text_representation, raised when an id is not a valid uuid.
INVALID_TEXT_REPRESENTATION = "22P02"


def backend_message(error: Exception) -> str:
    """Best available message of a backend (PostgREST) error."""
    return getattr(error, "message", None) or str(error)


def is_invalid_id(error: Exception) -> bool:
    return getattr(error, "code", None) == INVALID_TEXT_REPRESENTATION


def to_tool(row: Dict[str, Any]) -> ToolRead:
    fields = row.get("tool_fields")
    records = row.get("tool_records")
    return ToolRead(
        id=str(row["id"]),
        name=row.get("name") or "",
        description=row.get("description"),
        purpose=row.get("purpose"),
        is_deployed=bool(row.get("is_deployed")),
        owner_id=str(row["owner_id"]) if row.get("owner_id") else None,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        field_count=len(fields) if isinstance(fields, list) else 0,
        record_count=len(records) if isinstance(records, list) else 0,
    )


class ToolCRUD:
    """
    Accessors for the `tools` table. Field rows are written together with their tool.
    """
    table = "tools"
    fields_table = "tool_fields"

    async def create(self, client: AsyncClient, tool_schema: ToolSchema, owner_id: str) -> str:
        """
        Create the tool row and its field rows. Returns the new tool id.
        If the field rows cannot be written the tool row is removed again.
        """
        try:
            response = await client.table(self.table).insert({
                "name": tool_schema.name,
                "description": tool_schema.description,
                "purpose": tool_schema.purpose,
                "is_deployed": False,
                "owner_id": owner_id,
            }).execute()
        except Exception as e:
            raise BackendError("create tool", backend_message(e)) from e

        if not response.data:
            raise BackendError("create tool", "no row returned")
        tool_id = str(response.data[0]["id"])

        if tool_schema.fields:
            rows = [
                {
                    "tool_id": tool_id,
                    "name": field.name,
                    "type": field.type.value,
                    "description": field.description,
                    "required": field.required,
                    "options": field.options,
                    "position": position,
                }
                for position, field in enumerate(tool_schema.fields)
            ]
            try:
                await client.table(self.fields_table).insert(rows).execute()
            except Exception as e:
                logger.error(f"Field insert failed for tool {tool_id}, removing tool row: {e}")
                await self._discard(client, tool_id)
                raise BackendError("create tool fields", backend_message(e)) from e

        logger.info(f"Tool '{tool_schema.name}' created (ID: {tool_id}) with {len(tool_schema.fields)} fields")
        return tool_id

    async def _discard(self, client: AsyncClient, tool_id: str) -> None:
        try:
            await client.table(self.table).delete().eq("id", tool_id).execute()
        except Exception as e:
            logger.error(f"Could not remove partially created tool {tool_id}: {e}")

    async def get_all(self, client: AsyncClient, owner_id: str) -> List[ToolRead]:
        """All tools of `owner_id`, newest first."""
        try:
            response = await (
                client.table(self.table)
                .select(TOOL_COLUMNS)
                .eq("owner_id", owner_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise BackendError("fetch tools", backend_message(e)) from e
        return [to_tool(row) for row in response.data or []]

    async def get(self, client: AsyncClient, tool_id: str) -> ToolRead:
        try:
            response = await client.table(self.table).select(TOOL_COLUMNS).eq("id", tool_id).limit(1).execute()
        except Exception as e:
            if is_invalid_id(e):
                raise ToolNotFoundError(tool_id) from e
            raise BackendError("fetch tool", backend_message(e)) from e
        if not response.data:
            raise ToolNotFoundError(tool_id)
        return to_tool(response.data[0])

    async def update(self, client: AsyncClient, tool_id: str, tool_update: ToolUpdate) -> ToolRead:
        update_data = tool_update.model_dump(exclude_unset=True, exclude_none=True)
        if update_data:
            try:
                response = await client.table(self.table).update(update_data).eq("id", tool_id).execute()
            except Exception as e:
                if is_invalid_id(e):
                    raise ToolNotFoundError(tool_id) from e
                raise BackendError("update tool", backend_message(e)) from e
            if not response.data:
                raise ToolNotFoundError(tool_id)
        return await self.get(client, tool_id)

    async def delete(self, client: AsyncClient, tool_id: str) -> None:
        """Fields and records go with the tool (ON DELETE CASCADE)."""
        try:
            response = await client.table(self.table).delete().eq("id", tool_id).execute()
        except Exception as e:
            if is_invalid_id(e):
                raise ToolNotFoundError(tool_id) from e
            raise BackendError("delete tool", backend_message(e)) from e
        if not response.data:
            raise ToolNotFoundError(tool_id)


tool_crud = ToolCRUD()

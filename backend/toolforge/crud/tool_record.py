# backend/toolforge/crud/tool_record.py
import logging
from typing import Any, Dict, List

from supabase import AsyncClient

from toolforge.crud.tool import backend_message
from toolforge.exceptions import BackendError
from toolforge.schemas.tool import ToolRecordRead

logger = logging.getLogger(__name__)


class ToolRecordCRUD:
    """
    Accessors for `tool_records`. `data` is stored as-is; its keys are expected,
    not enforced, to match the tool's field names.
    """
    table = "tool_records"

    async def create(self, client: AsyncClient, tool_id: str, data: Dict[str, Any]) -> str:
        try:
            response = await client.table(self.table).insert({"tool_id": tool_id, "data": data}).execute()
        except Exception as e:
            raise BackendError("create record", backend_message(e)) from e
        if not response.data:
            raise BackendError("create record", "record creation failed")
        return str(response.data[0]["id"])

    async def get_all(self, client: AsyncClient, tool_id: str) -> List[ToolRecordRead]:
        """Records of a tool, newest first."""
        try:
            response = await (
                client.table(self.table)
                .select("*")
                .eq("tool_id", tool_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise BackendError("fetch tool records", backend_message(e)) from e

        return [
            ToolRecordRead(
                id=str(row["id"]),
                tool_id=str(row["tool_id"]),
                data=row.get("data") or {},
                created_at=row.get("created_at"),
                updated_at=row.get("updated_at"),
            )
            for row in response.data or []
        ]

    async def update(self, client: AsyncClient, record_id: str, data: Dict[str, Any]) -> None:
        try:
            await client.table(self.table).update({"data": data}).eq("id", record_id).execute()
        except Exception as e:
            raise BackendError("update record", backend_message(e)) from e

    async def delete(self, client: AsyncClient, record_id: str) -> None:
        try:
            await client.table(self.table).delete().eq("id", record_id).execute()
        except Exception as e:
            raise BackendError("delete tool record", backend_message(e)) from e
        logger.info(f"Record {record_id} deleted")


tool_record_crud = ToolRecordCRUD()

# backend/toolforge/crud/tool_field.py
from typing import List

from supabase import AsyncClient

from toolforge.crud.tool import backend_message
from toolforge.exceptions import BackendError
from toolforge.schemas.tool import ToolFieldRead


class ToolFieldCRUD:
    table = "tool_fields"

    async def get_all(self, client: AsyncClient, tool_id: str) -> List[ToolFieldRead]:
        """Fields of a tool in declaration order. Rows of one insert share `created_at`, so `position` decides."""
        try:
            response = await (
                client.table(self.table)
                .select("*")
                .eq("tool_id", tool_id)
                .order("position")
                .order("created_at")
                .execute()
            )
        except Exception as e:
            raise BackendError("fetch tool fields", backend_message(e)) from e

        return [
            ToolFieldRead(
                id=str(row["id"]),
                tool_id=str(row["tool_id"]),
                name=row["name"],
                type=row.get("type") or "text",
                description=row.get("description"),
                required=bool(row.get("required")),
                options=row.get("options") or [],
                position=row.get("position") or 0,
                created_at=row.get("created_at"),
            )
            for row in response.data or []
        ]


tool_field_crud = ToolFieldCRUD()

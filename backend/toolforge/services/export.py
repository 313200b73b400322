# backend/toolforge/services/export.py
import json
import re
from typing import Sequence, Tuple

from toolforge.schemas.tool import ToolRead, ToolRecordRead


def export_file_name(tool_name: str) -> str:
    """'Package Tracker' -> 'package-tracker-data.json'"""
    slug = re.sub(r"\s+", "-", tool_name.strip().lower())
    return f"{slug}-data.json"


def export_records(tool: ToolRead, records: Sequence[ToolRecordRead]) -> Tuple[str, str]:
    """File name and pretty-printed JSON array of the records' data."""
    body = json.dumps([record.data for record in records], indent=2, default=str)
    return export_file_name(tool.name), body

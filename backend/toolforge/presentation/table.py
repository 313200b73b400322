# backend/toolforge/presentation/table.py
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from toolforge.presentation.form import field_label
from toolforge.schemas.tool import FieldType, ToolFieldRead, ToolRecordRead

PLACEHOLDER = "-"
ACTIONS_KEY = "actions"
ACTIONS_HEADER = "Actions"
ROW_ACTIONS = ["edit", "delete"]


class Column(BaseModel):
    accessor_key: str
    header: str
    field_type: Optional[str] = None
    sortable: bool = True
    actions: List[str] = Field(default_factory=list)


class Row(BaseModel):
    id: str
    cells: Dict[str, Any]


class TableView(BaseModel):
    columns: List[Column]
    rows: List[Row]
    page: int
    page_size: int
    total: int
    pages: int
    sort_by: Optional[str] = None
    descending: bool = False


def build_columns(fields: Sequence[ToolFieldRead]) -> List[Column]:
    """One column per field, in field order, followed by the actions column."""
    columns = [
        Column(accessor_key=f"data.{field.name}", header=field_label(field.name), field_type=field.type)
        for field in fields
    ]
    columns.append(Column(accessor_key=ACTIONS_KEY, header=ACTIONS_HEADER, sortable=False, actions=list(ROW_ACTIONS)))
    return columns


def format_date(value: Any) -> str:
    """Locale date representation of an ISO date/datetime; unparseable values are returned as text."""
    if isinstance(value, datetime):
        return value.date().strftime("%x")
    if isinstance(value, date):
        return value.strftime("%x")
    text = str(value)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date().strftime("%x")
    except ValueError:
        return str(value)


def render_cell(field_type: Optional[str], value: Any) -> Any:
    if field_type == FieldType.BOOLEAN.value:
        return "Yes" if value else "No"
    if value is None:
        return PLACEHOLDER
    if field_type == FieldType.DATE.value and value != "":
        return format_date(value)
    return value


def _sort_key(value: Any):
    # Numbers before text; never compare a number with a string.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, str(value).lower())


def sort_records(records: Sequence[ToolRecordRead], field_name: str, descending: bool = False) -> List[ToolRecordRead]:
    """Orders records by one data key; records without a value stay at the end in either direction."""
    present = [r for r in records if r.data.get(field_name) is not None]
    absent = [r for r in records if r.data.get(field_name) is None]
    present.sort(key=lambda r: _sort_key(r.data[field_name]), reverse=descending)
    return present + absent


def build_table(
    fields: Sequence[ToolFieldRead],
    records: Sequence[ToolRecordRead],
    page: int = 1,
    page_size: int = 10,
    sort_by: Optional[str] = None,
    descending: bool = False,
) -> TableView:
    """
    Renders one page of records. `sort_by` names a field; without it records
    keep the order they were fetched in (newest first).
    """
    page = max(page, 1)
    page_size = max(page_size, 1)

    ordered = list(records)
    if sort_by and any(field.name == sort_by for field in fields):
        ordered = sort_records(ordered, sort_by, descending)
    else:
        sort_by = None

    total = len(ordered)
    pages = max(1, math.ceil(total / page_size))
    window = ordered[(page - 1) * page_size: page * page_size]

    rows = [
        Row(
            id=record.id,
            cells={
                f"data.{field.name}": render_cell(field.type, record.data.get(field.name))
                for field in fields
            },
        )
        for record in window
    ]

    return TableView(
        columns=build_columns(fields),
        rows=rows,
        page=page,
        page_size=page_size,
        total=total,
        pages=pages,
        sort_by=sort_by,
        descending=descending,
    )

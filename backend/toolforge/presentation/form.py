# backend/toolforge/presentation/form.py
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from toolforge.exceptions import RecordValidationError
from toolforge.presentation.controls import AnyControl, Control, SelectInput, control_class, is_blank
from toolforge.schemas.tool import ToolFieldRead


class FormView(BaseModel):
    title: str
    description: str
    submit_label: str
    controls: List[AnyControl]


def field_label(name: str) -> str:
    """Field name with its first letter upper-cased ("driver" -> "Driver")."""
    return name[:1].upper() + name[1:]


def build_control(field: ToolFieldRead, value: Any = None) -> Control:
    cls = control_class(field.type)
    kwargs: Dict[str, Any] = {
        "name": field.name,
        "label": field_label(field.name),
        "description": field.description,
        "required": field.required,
        "value": value,
    }
    if cls is SelectInput:
        kwargs["options"] = list(field.options or [])
    return cls(**kwargs)


def build_form(fields: Sequence[ToolFieldRead], initial: Optional[Dict[str, Any]] = None) -> FormView:
    """One control per field, in field order. `initial` pre-fills the form for editing a record."""
    editing = initial is not None
    values = initial or {}
    return FormView(
        title="Edit Data" if editing else "Add Data",
        description="Update the values for this data entry" if editing else "Add a new data entry",
        submit_label="Update" if editing else "Save",
        controls=[build_control(field, values.get(field.name)) for field in fields],
    )


def validate_submission(fields: Sequence[ToolFieldRead], data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Checks that every required field has a value and converts submitted values
    with their field's control. Keys without a matching field are kept as they are.
    """
    missing: List[str] = [
        field.name for field in fields
        if field.required and is_blank(data.get(field.name))
    ]
    if missing:
        raise RecordValidationError(missing)

    cleaned = dict(data)
    for field in fields:
        if field.name in cleaned:
            cleaned[field.name] = build_control(field).parse(cleaned[field.name])
    return cleaned

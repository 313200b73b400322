# backend/toolforge/presentation/controls.py
"""
Form controls, one class per field type.

`CONTROL_TYPES` maps every FieldType to its control; the module refuses to
import if a FieldType has no control, so adding a type means adding a control.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, Field

from toolforge.schemas.tool import FieldType

TRUE_STRINGS = {"true", "1", "yes", "on"}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Control(BaseModel):
    name: str
    label: str
    description: Optional[str] = None
    required: bool = False
    value: Any = None

    def parse(self, raw: Any) -> Any:
        """Converts a submitted value to what is stored in the record."""
        return raw


class TextInput(Control):
    kind: Literal["text"] = "text"


class NumberInput(Control):
    kind: Literal["number"] = "number"

    def parse(self, raw: Any) -> Any:
        if is_blank(raw) or isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            return raw
        try:
            return float(raw)
        except (TypeError, ValueError):
            return raw


class DatePicker(Control):
    kind: Literal["date"] = "date"


class Checkbox(Control):
    kind: Literal["boolean"] = "boolean"

    def parse(self, raw: Any) -> Any:
        if isinstance(raw, str):
            return raw.strip().lower() in TRUE_STRINGS
        return bool(raw)


class SelectInput(Control):
    kind: Literal["select"] = "select"
    options: List[str] = Field(default_factory=list)
    placeholder: str = "Select an option"


class TextArea(Control):
    kind: Literal["textarea"] = "textarea"


AnyControl = Annotated[
    Union[TextInput, NumberInput, DatePicker, Checkbox, SelectInput, TextArea],
    Field(discriminator="kind"),
]

CONTROL_TYPES: Dict[FieldType, Type[Control]] = {
    FieldType.TEXT: TextInput,
    FieldType.NUMBER: NumberInput,
    FieldType.DATE: DatePicker,
    FieldType.BOOLEAN: Checkbox,
    FieldType.SELECT: SelectInput,
    FieldType.TEXTAREA: TextArea,
}

_missing = set(FieldType) - set(CONTROL_TYPES)
if _missing:
    raise RuntimeError(f"No form control registered for field types: {sorted(t.value for t in _missing)}")


def field_type_of(type_name: str) -> Optional[FieldType]:
    try:
        return FieldType(type_name)
    except ValueError:
        return None


def control_class(type_name: str) -> Type[Control]:
    """Control for a stored type string; unknown types get a single-line text input."""
    field_type = field_type_of(type_name)
    return CONTROL_TYPES[field_type] if field_type is not None else TextInput

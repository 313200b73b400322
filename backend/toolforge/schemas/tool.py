# backend/toolforge/schemas/tool.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    SELECT = "select"
    TEXTAREA = "textarea"


class ToolFieldSpec(BaseModel):
    """One field as proposed by the model (or edited before saving)."""
    name: str = Field(..., min_length=1, description="Field name (snake_case)")
    type: FieldType = Field(..., description="Field type")
    description: str = Field("", description="What this field represents")
    required: bool = Field(False, description="Whether a value must be given on submit")
    options: List[str] = Field(default_factory=list, description="Choices, for select fields only")

    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, value):
        return "" if value is None else value

    @field_validator("options", mode="before")
    @classmethod
    def null_options(cls, value):
        return [] if value is None else value

    @field_validator("required", mode="before")
    @classmethod
    def null_required(cls, value):
        return False if value is None else value


class ToolSchema(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    purpose: str = Field(..., min_length=1)
    fields: List[ToolFieldSpec]
    sql_schema: str = Field(..., min_length=1, alias="sqlSchema")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "Package Delivery Tracker",
                "description": "Tracks package deliveries per driver.",
                "purpose": "Know where every package is.",
                "fields": [
                    {"name": "driver", "type": "text", "description": "Driver name", "required": True},
                    {"name": "status", "type": "select", "description": "Delivery status",
                     "required": True, "options": ["pending", "delivered"]},
                ],
                "sqlSchema": "CREATE TABLE IF NOT EXISTS package_deliveries (id uuid primary key);",
            }
        },
    )


class GenerateToolRequest(BaseModel):
    description: str


class ToolCreated(BaseModel):
    id: str


class ToolFieldRead(BaseModel):
    id: str
    tool_id: str
    name: str
    type: str
    description: Optional[str] = None
    required: bool = False
    options: List[str] = Field(default_factory=list)
    position: int = 0
    created_at: Optional[datetime] = None


class ToolRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    purpose: Optional[str] = None
    is_deployed: bool = False
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    field_count: int = 0
    record_count: int = 0


class ToolDetail(BaseModel):
    tool: ToolRead
    fields: List[ToolFieldRead]


class ToolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    purpose: Optional[str] = None
    is_deployed: Optional[bool] = None


class ToolRecordRead(BaseModel):
    id: str
    tool_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecordPayload(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class RecordCreated(BaseModel):
    id: str

# backend/toolforge/schemas/dashboard.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VisualizationLayout(BaseModel):
    fields: List[Any] = Field(default_factory=list, description="Fields the visualization uses")
    layout: Dict[str, Any] = Field(default_factory=dict, description="Free-form layout options")

    @field_validator("fields", mode="before")
    @classmethod
    def null_fields(cls, value):
        return [] if value is None else value

    @field_validator("layout", mode="before")
    @classmethod
    def null_layout(cls, value):
        return {} if value is None else value


class DashboardConfig(BaseModel):
    """Visualization suggested by the model for a tool's records."""
    type: str
    title: Optional[str] = None
    description: Optional[str] = None
    configuration: VisualizationLayout = Field(default_factory=VisualizationLayout)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "bar_chart",
                "title": "Deliveries per driver",
                "description": "Number of deliveries grouped by driver.",
                "configuration": {"fields": ["driver"], "layout": {"x": "driver", "y": "count"}},
            }
        }
    )

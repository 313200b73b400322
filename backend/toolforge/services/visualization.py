# backend/toolforge/services/visualization.py
import json
import logging
from typing import Dict, List, Sequence

from openai import AsyncOpenAI
from pydantic import ValidationError

from toolforge.core.clients import complete_prompt
from toolforge.core.config import settings
from toolforge.exceptions import DashboardGenerationError, NoRecordsError
from toolforge.schemas.dashboard import DashboardConfig
from toolforge.schemas.tool import FieldType, ToolFieldRead, ToolRead, ToolRecordRead
from toolforge.utils.logger import TraceLogger

logger = logging.getLogger(__name__)

FIELD_GROUPS = {
    "Numerical": (FieldType.NUMBER,),
    "Categorical": (FieldType.TEXT, FieldType.SELECT),
    "Date": (FieldType.DATE,),
    "Boolean": (FieldType.BOOLEAN,),
}


def group_fields(fields: Sequence[ToolFieldRead]) -> Dict[str, List[str]]:
    """Field names per analysis group. Textarea fields belong to none."""
    groups: Dict[str, List[str]] = {}
    for group, types in FIELD_GROUPS.items():
        values = {t.value for t in types}
        groups[group] = [field.name for field in fields if field.type in values]
    return groups


def build_dashboard_prompt(
    tool: ToolRead,
    fields: Sequence[ToolFieldRead],
    records: Sequence[ToolRecordRead],
) -> str:
    field_specs = [
        {"name": f.name, "type": f.type, "description": f.description, "required": f.required, "options": f.options}
        for f in fields
    ]
    sample = [record.data for record in records]
    categories = "\n".join(
        f"{i}. {group} fields: {', '.join(names) or 'None'}"
        for i, (group, names) in enumerate(group_fields(fields).items(), start=1)
    )
    return f'''
Analyze the following data and suggest the best visualization type for it.

Tool Purpose: {tool.purpose or tool.description or tool.name}
Data Fields: {json.dumps(field_specs, indent=2)}
Sample Data: {json.dumps(sample, indent=2, default=str)}

The fields by type:
{categories}

Based on this analysis, suggest an appropriate visualization configuration.
Respond ONLY with a JSON object of this structure:
{{
  "type": "visualization_type",
  "title": "chart_title",
  "description": "description",
  "configuration": {{
    "fields": ["fields used in the visualization"],
    "layout": {{}}
  }}
}}
'''


def extract_json_object(raw_text: str) -> str:
    """Text from the first '{' to the last '}' of the response."""
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end < start:
        raise ValueError("Model response did not contain valid JSON.")
    return raw_text[start:end + 1]


def parse_dashboard_config(raw_text: str) -> DashboardConfig:
    payload = json.loads(extract_json_object(raw_text))
    return DashboardConfig.model_validate(payload)


class VisualizationService:
    def __init__(self, openai_client: AsyncOpenAI, trace_logger: TraceLogger):
        self.openai_client = openai_client
        self.trace_logger = trace_logger
        self.llm_model = settings.LLM_MODEL

    async def suggest(
        self,
        tool: ToolRead,
        fields: Sequence[ToolFieldRead],
        records: Sequence[ToolRecordRead],
    ) -> DashboardConfig:
        """
        Asks the model for a visualization of the tool's records.
        A tool without records is rejected before the model is called.
        """
        if not records:
            raise NoRecordsError()

        logger.info(f"Suggesting a dashboard for tool {tool.id} ({len(records)} records)")
        try:
            raw_text = await complete_prompt(
                self.openai_client, build_dashboard_prompt(tool, fields, records), self.llm_model
            )
            logger.debug(f"LLM response: {raw_text[:500]}")
            config = parse_dashboard_config(raw_text)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning(f"Unusable dashboard returned by model: {e}")
            await self.trace_logger.log_event("dashboard_generation_failed", {"tool_id": tool.id, "error": str(e)})
            raise DashboardGenerationError(str(e)) from e
        except Exception as e:
            logger.error(f"Error generating dashboard: {e}", exc_info=True)
            await self.trace_logger.log_event("dashboard_generation_failed", {"tool_id": tool.id, "error": str(e)})
            raise DashboardGenerationError(getattr(e, "message", None) or str(e)) from e

        await self.trace_logger.log_event("dashboard_generated", {"tool_id": tool.id, "type": config.type})
        return config

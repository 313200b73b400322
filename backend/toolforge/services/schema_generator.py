# backend/toolforge/services/schema_generator.py

import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from pydantic import ValidationError
from supabase import AsyncClient

from toolforge.core.clients import complete_prompt
from toolforge.core.config import settings
from toolforge.exceptions import DescriptionRequiredError, IncompleteSchemaError, SchemaGenerationError
from toolforge.schemas.tool import ToolSchema
from toolforge.services.sql_gateway import SqlExecutionGateway
from toolforge.services.sql_guard import SqlGuard
from toolforge.utils.logger import TraceLogger

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("name", "description", "purpose", "fields", "sqlSchema")

_FENCE = re.compile(r"```json|```")


def build_prompt(description: str) -> str:
    return f'''
Generate a tool schema and SQL schema for Supabase based on this description: "{description}"

Respond ONLY with a JSON object that includes:
1. name: A concise, professional name for the tool
2. description: A brief description of what the tool does
3. purpose: The main purpose of the tool
4. fields: An array of field objects, each with:
   - name: The field name (snake_case)
   - type: Field type (text, number, date, boolean, select, textarea)
   - description: What this field represents
   - required: Whether required (boolean)
   - options: For select fields only, an array of strings
5. sqlSchema: A valid Supabase SQL schema with proper types and constraints.

Do NOT include any Markdown or explanation. Only raw JSON output.
'''


def strip_code_fences(raw_text: str) -> str:
    """Removes ```json / ``` markers wherever they appear and trims the rest."""
    return _FENCE.sub("", raw_text).strip()


def is_missing(value: Any) -> bool:
    """Absent, null or empty text. An empty `fields` list is a valid answer."""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_tool_schema(raw_text: str) -> ToolSchema:
    """
    Parses the model's text response into a ToolSchema.
    Raises ValueError (or a subclass) when the text is not JSON or is missing a required key.
    """
    payload = json.loads(strip_code_fences(raw_text))
    if not isinstance(payload, dict):
        raise ValueError("Model response is not a JSON object.")

    missing: List[str] = [key for key in REQUIRED_KEYS if is_missing(payload.get(key))]
    if missing:
        raise IncompleteSchemaError(missing)

    return ToolSchema.model_validate(payload)


class SchemaGeneratorService:
    def __init__(
        self,
        openai_client: AsyncOpenAI,
        gateway: SqlExecutionGateway,
        trace_logger: TraceLogger,
        sql_guard: Optional[SqlGuard] = None,
    ):
        self.openai_client = openai_client
        self.gateway = gateway
        self.trace_logger = trace_logger
        self.sql_guard = sql_guard
        self.llm_model = settings.LLM_MODEL

    async def _call_llm(self, prompt: str) -> str:
        return await complete_prompt(self.openai_client, prompt, self.llm_model)

    async def generate_tool_schema(self, description: str, client: Optional[AsyncClient] = None) -> ToolSchema:
        """
        Turns a free-text description into a ToolSchema and runs its SQL.

        The schema is only returned once its `sqlSchema` has been executed, with
        `client` (the caller's backend client) unless it needs the service role.
        Every failure is reported as one SchemaGenerationError; nothing is retried.
        """
        if not description or not description.strip():
            raise DescriptionRequiredError()

        logger.info(f"Generating tool schema for description: '{description[:80]}'")
        await self.trace_logger.log_event("tool_schema_generation_started", {"description": description})

        try:
            raw_text = await self._call_llm(build_prompt(description))
            logger.debug(f"LLM response: {raw_text[:500]}")

            tool_schema = parse_tool_schema(raw_text)

            if self.sql_guard is not None:
                self.sql_guard.validate(tool_schema.sql_schema)

            await self.gateway.execute_sql(tool_schema.sql_schema, client)

        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning(f"Unusable schema returned by model: {e}")
            await self._log_failure(description, e)
            raise SchemaGenerationError(str(e)) from e
        except Exception as e:
            logger.error(f"Error generating tool schema: {e}", exc_info=True)
            await self._log_failure(description, e)
            raise SchemaGenerationError(getattr(e, "message", None) or str(e)) from e

        await self.trace_logger.log_event("tool_schema_generated", {
            "name": tool_schema.name,
            "field_count": len(tool_schema.fields),
        })
        return tool_schema

    async def _log_failure(self, description: str, error: Exception) -> None:
        context: Dict[str, Any] = {"description": description, "error": str(error), "type": error.__class__.__name__}
        await self.trace_logger.log_event("tool_schema_generation_failed", context)

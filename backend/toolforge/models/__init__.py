# Import all models here so Alembic can discover them
from toolforge.models.base import Base
from toolforge.models.tool import Tool, ToolField, ToolRecord

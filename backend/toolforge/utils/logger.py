# backend/toolforge/utils/logger.py
import json
import os
from datetime import datetime
import logging
from typing import Dict, Any, Optional

from toolforge.core.config import settings

LOGS_DIR = settings.LOG_DIR
os.makedirs(LOGS_DIR, exist_ok=True)

APP_LOG_FILE_PATH = os.path.join(LOGS_DIR, "app_log.log")
TRACE_LOG_FILE_PATH = os.path.join(LOGS_DIR, "trace_log.jsonl")

# General application logger: console + file.
app_logger = logging.getLogger("toolforge")
app_logger.setLevel(settings.LOG_LEVEL)

console_handler = logging.StreamHandler()
console_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s')
console_handler.setFormatter(console_formatter)
app_logger.addHandler(console_handler)

app_file_handler = logging.FileHandler(APP_LOG_FILE_PATH)
app_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
app_file_handler.setFormatter(app_formatter)
app_logger.addHandler(app_file_handler)

# Child module loggers (toolforge.*) reach the handlers above; the root logger does not need them too.
app_logger.propagate = False


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON, specifically for trace logs."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "context": getattr(record, 'context', None)
        }
        return json.dumps(log_entry, default=str)


# --- Structured trace logger ---
# Records one JSON line per generation, SQL execution and tool/record mutation.
trace_logger_instance = logging.getLogger("toolforge.trace")
trace_logger_instance.setLevel(logging.INFO)
trace_logger_instance.propagate = False

trace_file_handler = logging.FileHandler(TRACE_LOG_FILE_PATH)
trace_file_handler.setFormatter(JsonFormatter())
trace_logger_instance.addHandler(trace_file_handler)


class TraceLogger:
    """
    A utility class to simplify logging structured events to the trace logger.
    """
    def __init__(self, logger_instance: logging.Logger):
        self.logger = logger_instance

    async def log_event(self, event_name: str, context: Optional[Dict[str, Any]] = None):
        """
        Logs a structured event with a name and optional context dictionary.
        The context ends up in the 'context' field of the JSON log entry.
        """
        extra_data = {'context': context} if context is not None else {}
        self.logger.info(event_name, extra=extra_data)

        app_logger.debug(f"[TRACE] {event_name}: {json.dumps(context, default=str)}")


trace_logger_service = TraceLogger(trace_logger_instance)

logger = app_logger

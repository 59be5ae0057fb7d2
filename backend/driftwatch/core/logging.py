"""
Structured Logging Configuration.

Supports two modes:
- text: Human-readable format for development
- json: Structured JSON format for production log shipping

Set LOG_FORMAT to "json" for production.
"""

import json
import logging
import sys
from typing import Any, Dict

from driftwatch.core.tracing import TracingContext


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs JSON strings with tracing context.

    Includes scan_run_id, job_key, repo_id etc. from TracingContext so a
    single scan can be followed across the API and the workers.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = TracingContext.get()

        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "line": record.lineno,
            "correlation_id": ctx["correlation_id"],
            "repo_id": ctx["repo_id"],
            "scan_run_id": ctx["scan_run_id"],
            "job_key": ctx["job_key"],
            "trigger_type": ctx["trigger_type"],
            "task_name": ctx["task_name"],
        }

        if hasattr(record, "task_id"):
            log_record["task_id"] = record.task_id

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


def setup_logging(log_format: str | None = None) -> None:
    """
    Setup structured logging for the application.

    Uses LOG_FORMAT setting to determine format:
    - "json": Structured JSON
    - "text" (default): Human-readable for development
    """
    root_logger = logging.getLogger()

    # Avoid adding multiple handlers
    if root_logger.handlers:
        return

    root_logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    if log_format is None:
        from driftwatch.config import settings

        log_format = settings.LOG_FORMAT

    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)

    root_logger.addHandler(handler)

    # Set lower level for noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("celery.app.trace").setLevel(logging.WARNING)

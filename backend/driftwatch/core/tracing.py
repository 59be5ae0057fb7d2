"""
Tracing Context - Thread-safe context management for scan tracing.

Scan tasks set the context once they know which ScanRun they are driving,
so every log line emitted by the orchestrator and its collaborators can be
filtered by scan, repository or job key.

Usage:
    TracingContext.set(
        correlation_id="abc-123",
        repo_id="42",
        scan_run_id="65f0...",
        job_key="pr-scan-42-7",
    )

    prefix = TracingContext.get_log_prefix()  # "[corr=abc-123]"

    TracingContext.clear()
"""

import uuid
from contextvars import ContextVar
from typing import Dict

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_repo_id: ContextVar[str] = ContextVar("repo_id", default="")
_scan_run_id: ContextVar[str] = ContextVar("scan_run_id", default="")
_job_key: ContextVar[str] = ContextVar("job_key", default="")
_trigger_type: ContextVar[str] = ContextVar("trigger_type", default="")
_task_name: ContextVar[str] = ContextVar("task_name", default="")


class TracingContext:
    """Thread-safe tracing context for scan execution."""

    @staticmethod
    def set(
        correlation_id: str = "",
        repo_id: str = "",
        scan_run_id: str = "",
        job_key: str = "",
        trigger_type: str = "",
        task_name: str = "",
    ) -> None:
        """Set tracing context for current execution."""
        if correlation_id:
            _correlation_id.set(correlation_id)
        if repo_id:
            _repo_id.set(repo_id)
        if scan_run_id:
            _scan_run_id.set(scan_run_id)
        if job_key:
            _job_key.set(job_key)
        if trigger_type:
            _trigger_type.set(trigger_type)
        if task_name:
            _task_name.set(task_name)

    @staticmethod
    def get() -> Dict[str, str]:
        """Get current tracing context as dict."""
        return {
            "correlation_id": _correlation_id.get(),
            "repo_id": _repo_id.get(),
            "scan_run_id": _scan_run_id.get(),
            "job_key": _job_key.get(),
            "trigger_type": _trigger_type.get(),
            "task_name": _task_name.get(),
        }

    @staticmethod
    def get_or_create_correlation_id() -> str:
        """Get current correlation ID or create a new one."""
        corr_id = _correlation_id.get()
        if not corr_id:
            corr_id = str(uuid.uuid4())
            _correlation_id.set(corr_id)
        return corr_id

    @staticmethod
    def get_log_prefix() -> str:
        """Get a formatted prefix for manual logging."""
        corr_id = _correlation_id.get()
        if corr_id:
            return f"[corr={corr_id[:8]}]"
        return ""

    @staticmethod
    def clear() -> None:
        """Clear all tracing context."""
        _correlation_id.set("")
        _repo_id.set("")
        _scan_run_id.set("")
        _job_key.set("")
        _trigger_type.set("")
        _task_name.set("")

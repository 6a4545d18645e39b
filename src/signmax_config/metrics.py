"""Prometheus instrumentation for installer runs and peer audits.

Metrics are registered once at import time on the default
``prometheus_client`` registry. Recording is skipped entirely when
``SIGNMAX_CONFIG_METRICS_ENABLED`` is false; structured logs are emitted either
way.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Final

from prometheus_client import Counter, Histogram

from signmax_config.logging import get_logger, with_fields
from signmax_config.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from signmax_config.logging import LoggerAdapter

__all__: Final[list[str]] = [
    "PEER_AUDIT_ISSUES_TOTAL",
    "TOOL_DURATION_SECONDS",
    "TOOL_FAILURES_TOTAL",
    "TOOL_RUNS_TOTAL",
    "ToolRunObservation",
    "observe_tool_run",
    "record_audit_issues",
]

LOGGER = get_logger(__name__)

TOOL_RUNS_TOTAL: Final = Counter(
    "signmax_tool_runs_total",
    "Total package manager invocations",
    labelnames=["tool", "status"],
)

TOOL_FAILURES_TOTAL: Final = Counter(
    "signmax_tool_failures_total",
    "Package manager failures grouped by reason",
    labelnames=["tool", "reason"],
)

TOOL_DURATION_SECONDS: Final = Histogram(
    "signmax_tool_duration_seconds",
    "Package manager run duration in seconds",
    labelnames=["tool", "status"],
)

PEER_AUDIT_ISSUES_TOTAL: Final = Counter(
    "signmax_peer_audit_issues_total",
    "Peer dependency audit findings grouped by kind",
    labelnames=["kind"],
)


@dataclass(slots=True)
class ToolRunObservation:
    """Captures runtime details for a single subprocess invocation."""

    command: Sequence[str]
    cwd: Path | None
    tool: str = field(init=False)
    status: str = field(default="success", init=False)
    failure_reason: str | None = field(default=None, init=False)
    returncode: int | None = field(default=None, init=False)
    start_time: float = field(default_factory=time.monotonic, init=False)
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        self.tool = Path(self.command[0]).name if self.command else "<unknown>"

    def success(self, returncode: int) -> None:
        """Record successful completion."""
        self.status = "success"
        self.returncode = returncode
        self.failure_reason = None

    def failure(self, reason: str, *, returncode: int | None = None) -> None:
        """Record failed completion."""
        self.status = "error"
        self.failure_reason = reason
        self.returncode = returncode

    def duration_seconds(self) -> float:
        """Return the elapsed time since the observation started."""
        return time.monotonic() - self.start_time


@contextmanager
def observe_tool_run(command: Sequence[str], *, cwd: Path | None) -> Iterator[ToolRunObservation]:
    """Record metrics and a structured log record for a subprocess run.

    Parameters
    ----------
    command : Sequence[str]
        Command being executed.
    cwd : Path | None
        Working directory of the command.

    Yields
    ------
    ToolRunObservation
        Mutable observation the caller marks as success or failure.

    Notes
    -----
    Exceptions raised inside the block are recorded as failures and re-raised.
    """
    observation = ToolRunObservation(
        command=command,
        cwd=cwd,
        metrics_enabled=get_settings().metrics_enabled,
    )
    logger = with_fields(
        LOGGER,
        operation="tool_run",
        tool=observation.tool,
        command=list(command),
        cwd=str(cwd) if cwd else None,
    )
    try:
        yield observation
    except Exception:
        if observation.status == "success":
            observation.failure("exception")
        _record(observation, logger)
        raise
    _record(observation, logger)


def _record(observation: ToolRunObservation, logger: LoggerAdapter) -> None:
    duration = observation.duration_seconds()
    status = observation.status
    if observation.metrics_enabled:
        TOOL_RUNS_TOTAL.labels(tool=observation.tool, status=status).inc()
        TOOL_DURATION_SECONDS.labels(tool=observation.tool, status=status).observe(duration)
    extra: dict[str, object] = {
        "duration_ms": duration * 1000,
        "status": status,
        "returncode": observation.returncode,
    }
    if status == "error":
        reason = observation.failure_reason or "unknown"
        if observation.metrics_enabled:
            TOOL_FAILURES_TOTAL.labels(tool=observation.tool, reason=reason).inc()
        extra["reason"] = reason
        logger.error("Tool run failed", extra=extra)
    else:
        logger.info("Tool run succeeded", extra=extra)


def record_audit_issues(*, missing: int, mismatched: int) -> None:
    """Count audit findings by kind when metrics are enabled."""
    if not get_settings().metrics_enabled:
        return
    if missing:
        PEER_AUDIT_ISSUES_TOTAL.labels(kind="missing").inc(missing)
    if mismatched:
        PEER_AUDIT_ISSUES_TOTAL.labels(kind="mismatched").inc(mismatched)

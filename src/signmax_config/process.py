"""Process execution adapter for package manager invocations.

The installer never calls :mod:`subprocess` directly. It goes through
:class:`ProcessRunner`, which resolves the executable against an allow list,
builds the child environment, records metrics, and maps every failure mode
(missing executable, disallowed executable, non-zero exit) onto
:class:`ToolExecutionError`. Standard streams are inherited so the package
manager's own progress output reaches the terminal unchanged.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Callable, Mapping, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from signmax_config.logging import get_logger
from signmax_config.metrics import ToolRunObservation, observe_tool_run
from signmax_config.problem_details import (
    tool_disallowed_problem_details,
    tool_failure_problem_details,
    tool_missing_problem_details,
)
from signmax_config.settings import get_settings

if TYPE_CHECKING:
    from signmax_config.logging import LoggerAdapter
    from signmax_config.problem_details import ProblemDetailsDict
    from signmax_config.settings import ToolSettings

__all__ = [
    "AllowListEnforcer",
    "AllowListPolicy",
    "EnvironmentPolicy",
    "InheritedEnvironment",
    "ProcessRunner",
    "ToolExecutionError",
    "ToolRunResult",
    "get_process_runner",
    "set_process_runner",
]

Command = Sequence[str]
ObservationFactory = Callable[[Sequence[str], Path | None], AbstractContextManager[ToolRunObservation]]

LOGGER = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class ToolRunResult:
    """Outcome of a subprocess whose streams were inherited."""

    command: tuple[str, ...]
    returncode: int
    cwd: Path | None
    duration_seconds: float


class ToolExecutionError(RuntimeError):
    """Raised when a subprocess cannot be spawned or exits unsuccessfully.

    Parameters
    ----------
    message : str
        Human-readable error message.
    command : Sequence[str]
        Command that failed.
    returncode : int | None, optional
        Exit status when the process ran.
    problem : ProblemDetailsDict | None, optional
        RFC 9457 Problem Details payload.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str],
        returncode: int | None = None,
        problem: ProblemDetailsDict | None = None,
    ) -> None:
        super().__init__(message)
        self.command: tuple[str, ...] = tuple(command)
        self.returncode = returncode
        self.problem = problem


@runtime_checkable
class AllowListPolicy(Protocol):
    """Protocol for resolving and vetting executables."""

    def resolve(self, executable: str, command: Command) -> Path: ...


@dataclass(slots=True, frozen=True)
class AllowListEnforcer:
    """Allow-list policy backed by :class:`ToolSettings`."""

    settings_loader: Callable[[], ToolSettings] = get_settings
    which: Callable[[str], str | None] = shutil.which

    def resolve(self, executable: str, command: Command) -> Path:
        """Resolve ``executable`` to an absolute, allow-listed path.

        Raises
        ------
        ToolExecutionError
            When the executable is not on ``PATH`` or not allow-listed.
        """
        candidate = Path(executable)
        if not candidate.is_absolute():
            resolved = self.which(executable)
            if resolved is None:
                detail = f"Executable '{executable}' could not be resolved to an absolute path"
                problem = tool_missing_problem_details(
                    command=command, executable=executable, detail=detail
                )
                raise ToolExecutionError(detail, command=command, problem=problem)
            candidate = Path(resolved)

        settings = self.settings_loader()
        if not settings.is_allowed(candidate):
            problem = tool_disallowed_problem_details(
                command=command,
                executable=candidate,
                allowlist=settings.exec_allowlist,
            )
            message = f"Executable '{candidate}' is not permitted by SIGNMAX_CONFIG_EXEC_ALLOWLIST"
            LOGGER.warning(message, extra={"executable": str(candidate), "command": list(command)})
            raise ToolExecutionError(message, command=command, problem=problem)
        return candidate


@runtime_checkable
class EnvironmentPolicy(Protocol):
    """Protocol describing how child environments are constructed."""

    def build(self, overrides: Mapping[str, str] | None) -> dict[str, str]: ...


@dataclass(slots=True, frozen=True)
class InheritedEnvironment:
    """Pass the parent environment through, applying ``overrides`` on top.

    Package managers read their configuration (registry, auth tokens, cache
    locations) from ``npm_config_*`` variables, so nothing is filtered out.
    """

    source: Callable[[], Mapping[str, str]] = lambda: os.environ

    def build(self, overrides: Mapping[str, str] | None) -> dict[str, str]:
        env = dict(self.source())
        if overrides:
            env.update({key: str(value) for key, value in overrides.items()})
        return env


def _default_observer_factory(
    command: Sequence[str], cwd: Path | None
) -> AbstractContextManager[ToolRunObservation]:
    return observe_tool_run(command, cwd=cwd)


@dataclass(slots=True)
class ProcessRunner:
    """Executes package manager subprocesses under shared policies."""

    allowlist: AllowListPolicy = field(default_factory=AllowListEnforcer)
    environment: EnvironmentPolicy = field(default_factory=InheritedEnvironment)
    observer_factory: ObservationFactory = field(default=_default_observer_factory)
    logger: LoggerAdapter = field(default_factory=lambda: get_logger(__name__))

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = False,
    ) -> ToolRunResult:
        """Execute ``command`` and wait for it to finish, without a timeout.

        Parameters
        ----------
        command : Sequence[str]
            Executable followed by its arguments.
        cwd : Path | None, optional
            Working directory. Defaults to the current directory.
        env : Mapping[str, str] | None, optional
            Variables layered on top of the inherited environment.
        check : bool, optional
            Raise :class:`ToolExecutionError` on a non-zero exit status.

        Returns
        -------
        ToolRunResult
            Exit status and timing of the run.

        Raises
        ------
        ToolExecutionError
            When the command is empty, cannot be spawned, or
            (with ``check``) exits with a non-zero status.
        """
        if not command:
            message = "Command must contain at least one argument"
            raise ToolExecutionError(message, command=[])

        executable = self.allowlist.resolve(command[0], command)
        final_command = (str(executable), *command[1:])
        child_env = self.environment.build(env)
        self.logger.debug(
            "Spawning subprocess",
            extra={"operation": "tool_run", "command": list(final_command), "cwd": str(cwd or "")},
        )

        with self.observer_factory(final_command, cwd) as observation:
            try:
                completed = self._spawn(final_command, cwd=cwd, env=child_env)
            except OSError as exc:
                observation.failure("spawn_error")
                detail = str(exc)
                problem = tool_missing_problem_details(
                    command=command, executable=command[0], detail=detail
                )
                raise ToolExecutionError(detail, command=command, problem=problem) from exc

            if completed.returncode == 0:
                observation.success(completed.returncode)
            else:
                observation.failure("non_zero_exit", returncode=completed.returncode)

            result = ToolRunResult(
                command=final_command,
                returncode=completed.returncode,
                cwd=cwd,
                duration_seconds=observation.duration_seconds(),
            )

        if check and result.returncode != 0:
            message = f"{command[0]} exited with code {result.returncode}"
            problem = tool_failure_problem_details(
                command=command, returncode=result.returncode, detail=message
            )
            raise ToolExecutionError(
                message, command=command, returncode=result.returncode, problem=problem
            )
        return result

    @staticmethod
    def _spawn(
        final_command: tuple[str, ...],
        *,
        cwd: Path | None,
        env: Mapping[str, str],
    ) -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(  # noqa: S603 - executable resolved through the allow list
            final_command,
            cwd=str(cwd) if cwd else None,
            env=dict(env),
            check=False,
        )


_PROCESS_STATE: list[ProcessRunner] = []


def get_process_runner() -> ProcessRunner:
    """Return the process runner used by the installer."""
    if not _PROCESS_STATE:
        _PROCESS_STATE.append(ProcessRunner())
    return _PROCESS_STATE[0]


def set_process_runner(runner: ProcessRunner | None) -> None:
    """Replace (or with ``None`` reset) the shared process runner.

    Intended for tests that need to inject a runner with fake policies.
    """
    _PROCESS_STATE.clear()
    if runner is not None:
        _PROCESS_STATE.append(runner)

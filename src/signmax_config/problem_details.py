"""RFC 9457 Problem Details helpers for the peer tooling.

Every failure raised by the installer or the auditor carries a Problem Details
payload so it can be logged as a structured record (and asserted on in tests)
independently from the one-line message printed to the terminal.

Examples
--------
>>> problem = build_problem_details(
...     ProblemDetailsParams(
...         type="urn:signmax-config:problem:tool-failure",
...         title="Tool failed",
...         status=500,
...         detail="pnpm exited with code 1",
...         instance="urn:tool:pnpm:exit-1",
...         extensions={"returncode": 1},
...     )
... )
>>> problem["returncode"]
1
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "BASE_TYPE_URI",
    "JsonValue",
    "ProblemDetailsDict",
    "ProblemDetailsParams",
    "ToolProblemDetailsParams",
    "build_problem_details",
    "build_tool_problem_details",
    "coerce_optional_dict",
    "tool_disallowed_problem_details",
    "tool_failure_problem_details",
    "tool_missing_problem_details",
]

BASE_TYPE_URI: Final[str] = "urn:signmax-config:problem"

JsonPrimitive = str | int | float | bool | None
JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]

ProblemDetailsDict = dict[str, JsonValue]


def coerce_optional_dict(
    mapping: Mapping[str, JsonValue] | None,
) -> dict[str, JsonValue] | None:
    """Return ``mapping`` as a ``dict`` when non-empty, otherwise ``None``."""
    if mapping is None:
        return None
    materialised = {str(key): value for key, value in mapping.items()}
    if not materialised:
        return None
    return materialised


@dataclass(frozen=True, slots=True)
class ProblemDetailsParams:
    """Core fields required to build a Problem Details payload."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
    extensions: Mapping[str, JsonValue] | None = None


def build_problem_details(params: ProblemDetailsParams) -> ProblemDetailsDict:
    """Build an RFC 9457 Problem Details payload.

    Extension members are flattened into the top-level object, as the RFC
    prescribes.

    Parameters
    ----------
    params : ProblemDetailsParams
        Structured fields describing the payload.

    Returns
    -------
    ProblemDetailsDict
        Problem Details payload.
    """
    payload: ProblemDetailsDict = {
        "type": params.type,
        "title": params.title,
        "status": params.status,
        "detail": params.detail,
        "instance": params.instance,
    }
    extensions = coerce_optional_dict(params.extensions)
    if extensions:
        for key, value in extensions.items():
            payload.setdefault(key, value)
    return payload


@dataclass(frozen=True, slots=True)
class ToolProblemDetailsParams:
    """Inputs describing a package manager subprocess failure."""

    category: str
    command: Sequence[str]
    status: int
    title: str
    detail: str
    instance_suffix: str
    extensions: Mapping[str, JsonValue] | None = None


def build_tool_problem_details(params: ToolProblemDetailsParams) -> ProblemDetailsDict:
    """Return a Problem Details payload describing a subprocess failure.

    Parameters
    ----------
    params : ToolProblemDetailsParams
        Failure context.

    Returns
    -------
    ProblemDetailsDict
        Problem Details payload.
    """
    command_list = [str(part) for part in params.command]
    tool_name = Path(command_list[0]).name if command_list else "<unknown>"
    merged_extensions: dict[str, JsonValue] = {"command": list(command_list)}
    additional = coerce_optional_dict(params.extensions)
    if additional:
        merged_extensions.update(additional)
    return build_problem_details(
        ProblemDetailsParams(
            type=f"{BASE_TYPE_URI}:{params.category}",
            title=params.title,
            status=params.status,
            detail=params.detail,
            instance=f"urn:tool:{tool_name}:{params.instance_suffix}",
            extensions=merged_extensions,
        )
    )


def tool_missing_problem_details(
    command: Sequence[str],
    *,
    executable: str,
    detail: str,
) -> ProblemDetailsDict:
    """Return Problem Details describing an executable that cannot be found."""
    return build_tool_problem_details(
        ToolProblemDetailsParams(
            category="tool-missing",
            command=command or [executable],
            status=500,
            title="Executable not found",
            detail=detail,
            instance_suffix="missing",
        )
    )


def tool_disallowed_problem_details(
    command: Sequence[str],
    *,
    executable: Path,
    allowlist: Sequence[str],
) -> ProblemDetailsDict:
    """Return Problem Details describing an allow-list violation."""
    return build_tool_problem_details(
        ToolProblemDetailsParams(
            category="tool-exec-disallowed",
            command=command,
            status=403,
            title="Executable not allowed",
            detail=(
                f"Executable '{executable.name}' is not permitted by the "
                "SIGNMAX_CONFIG_EXEC_ALLOWLIST setting"
            ),
            instance_suffix="disallowed",
            extensions={
                "executable": str(executable),
                "allowlist": list(allowlist),
            },
        )
    )


def tool_failure_problem_details(
    command: Sequence[str],
    *,
    returncode: int,
    detail: str,
) -> ProblemDetailsDict:
    """Return Problem Details describing a non-zero exit status.

    Parameters
    ----------
    command : Sequence[str]
        Command that failed.
    returncode : int
        Exit status reported by the child process.
    detail : str
        Human-readable description.

    Returns
    -------
    ProblemDetailsDict
        Problem Details payload.
    """
    return build_tool_problem_details(
        ToolProblemDetailsParams(
            category="tool-failure",
            command=command,
            status=500,
            title="Tool returned a non-zero exit code",
            detail=detail,
            instance_suffix=f"exit-{returncode}",
            extensions={"returncode": returncode},
        )
    )

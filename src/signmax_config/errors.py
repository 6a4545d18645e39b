"""Typed exception hierarchy with Problem Details support.

All installer and auditor failures inherit from :class:`PeerDepsError`, which
keeps the plain message as ``str(exc)`` (that is what the CLIs print) and
exposes an RFC 9457 payload through :meth:`PeerDepsError.to_problem_details`.

Examples
--------
>>> from signmax_config.errors import ErrorCode, UnsupportedManagerError
>>> error = UnsupportedManagerError("yarn")
>>> error.code == ErrorCode.UNSUPPORTED_MANAGER
True
>>> str(error)
'Unsupported package manager: yarn. Supported managers: npm, pnpm, bun'
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

from signmax_config.problem_details import (
    BASE_TYPE_URI,
    ProblemDetailsParams,
    build_problem_details,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from signmax_config.problem_details import JsonValue, ProblemDetailsDict

__all__ = [
    "EmptyPackageListError",
    "ErrorCode",
    "ManifestError",
    "PeerDepsError",
    "PeerResolutionError",
    "UnsupportedManagerError",
    "get_type_uri",
]

SUPPORTED_MANAGERS_TEXT = "npm, pnpm, bun"


class ErrorCode(StrEnum):
    """Stable error codes used in Problem Details ``type`` URIs."""

    MANIFEST_INVALID = "manifest-invalid"
    UNSUPPORTED_MANAGER = "unsupported-manager"
    EMPTY_PACKAGE_LIST = "empty-package-list"
    PEER_UNRESOLVED = "peer-unresolved"
    RUNTIME_ERROR = "runtime-error"


def get_type_uri(code: ErrorCode) -> str:
    """Return the Problem Details type URI for ``code``.

    >>> get_type_uri(ErrorCode.MANIFEST_INVALID)
    'urn:signmax-config:problem:manifest-invalid'
    """
    return f"{BASE_TYPE_URI}:{code.value}"


class PeerDepsError(RuntimeError):
    """Base exception for peer dependency tooling failures.

    Parameters
    ----------
    message : str
        Human-readable error message.
    context : Mapping[str, JsonValue] | None, optional
        Extra structured fields copied into the Problem Details payload.
    """

    code: ClassVar[ErrorCode] = ErrorCode.RUNTIME_ERROR
    status: ClassVar[int] = 500

    def __init__(self, message: str, *, context: Mapping[str, JsonValue] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, JsonValue] = dict(context) if context else {}

    @property
    def problem(self) -> ProblemDetailsDict:
        """Problem Details payload for this error."""
        return self.to_problem_details()

    def to_problem_details(self, instance: str | None = None) -> ProblemDetailsDict:
        """Convert the error into an RFC 9457 payload.

        Parameters
        ----------
        instance : str | None, optional
            URI identifying the occurrence. Defaults to an URN built from the code.

        Returns
        -------
        ProblemDetailsDict
            Problem Details payload including ``code`` and context extensions.
        """
        extensions: dict[str, JsonValue] = {"code": self.code.value, **self.context}
        return build_problem_details(
            ProblemDetailsParams(
                type=get_type_uri(self.code),
                title=self.__class__.__name__,
                status=self.status,
                detail=self.message,
                instance=instance or f"urn:signmax-config:error:{self.code.value}",
                extensions=extensions,
            )
        )


class ManifestError(PeerDepsError):
    """Raised when the package manifest cannot be read or decoded."""

    code = ErrorCode.MANIFEST_INVALID

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message, context={"manifest_path": str(path)})
        self.path = path


class UnsupportedManagerError(PeerDepsError, ValueError):
    """Raised when an install command is requested for an unknown manager."""

    code = ErrorCode.UNSUPPORTED_MANAGER
    status = 400

    def __init__(self, manager: str) -> None:
        message = (
            f"Unsupported package manager: {manager}. "
            f"Supported managers: {SUPPORTED_MANAGERS_TEXT}"
        )
        super().__init__(message, context={"manager": manager})
        self.manager = manager


class EmptyPackageListError(PeerDepsError, ValueError):
    """Raised when an install command is requested without any package."""

    code = ErrorCode.EMPTY_PACKAGE_LIST
    status = 400

    def __init__(self, message: str = "No peer dependencies to install.") -> None:
        super().__init__(message)


class PeerResolutionError(PeerDepsError, LookupError):
    """Raised by module resolvers when a peer's manifest cannot be located."""

    code = ErrorCode.PEER_UNRESOLVED
    status = 404

    def __init__(self, request: str, *, base_dir: Path) -> None:
        message = f"Cannot find module '{request}' from '{base_dir}'"
        super().__init__(message, context={"request": request, "base_dir": str(base_dir)})
        self.request = request
        self.base_dir = base_dir

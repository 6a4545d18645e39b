"""Typed settings for the peer tooling.

Settings are loaded from ``SIGNMAX_CONFIG_*`` environment variables through
``pydantic_settings.BaseSettings``. Validation errors surface as
:class:`SettingsError` carrying an RFC 9457 payload so the CLIs can fail fast
with a structured log record.

The package manager variables (``npm_config_user_agent``, ``INIT_CWD``,
``npm_config_local_prefix``) are deliberately *not* part of this model: they
are passed explicitly as an ``env`` mapping into the installer and auditor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from fnmatch import fnmatch
from pathlib import Path
from typing import Annotated, Final, TypeVar

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from signmax_config.problem_details import (
    BASE_TYPE_URI,
    JsonValue,
    ProblemDetailsDict,
    ProblemDetailsParams,
    build_problem_details,
)

__all__: Final[list[str]] = [
    "SettingsError",
    "ToolSettings",
    "get_settings",
    "load_settings",
    "reset_settings_cache",
]

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


class SettingsError(RuntimeError):
    """Raised when settings fail validation."""

    def __init__(
        self,
        message: str,
        *,
        problem: ProblemDetailsDict,
        errors: Sequence[dict[str, JsonValue]],
    ) -> None:
        super().__init__(message)
        self.problem = problem
        self.errors: tuple[dict[str, JsonValue], ...] = tuple(errors)


class ToolSettings(BaseSettings):
    """Runtime configuration shared by the installer and the auditor."""

    model_config = SettingsConfigDict(
        env_prefix="SIGNMAX_CONFIG_", case_sensitive=False, extra="ignore"
    )

    manifest_path: Path | None = Field(
        default=None,
        description="Manifest whose peerDependencies are installed and audited.",
    )
    log_level: str = Field(default="WARNING", description="Root log level for the CLIs")
    json_logs: bool = Field(default=True, description="Emit log records as JSON lines")
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics for installs and audits",
    )
    exec_allowlist: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("npm", "pnpm", "bun"),
        description="Glob patterns for executables the installer may spawn",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            message = "log_level must be a non-empty level name"
            raise ValueError(message)
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            message = f"log_level must be one of the standard level names, got {value.strip()!r}"
            raise ValueError(message)
        return level

    @field_validator("exec_allowlist", mode="before")
    @classmethod
    def _normalise_allowlist(cls, value: object) -> tuple[str, ...]:
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        if isinstance(value, (list, tuple, set)):
            return tuple(str(part).strip() for part in value if str(part).strip())
        message = "exec_allowlist must be a comma-separated string or sequence"
        raise TypeError(message)

    def is_allowed(self, executable: Path) -> bool:
        """Return ``True`` when ``executable`` matches the allow list.

        Absolute patterns must match the full path; other patterns are matched
        against the executable's file name (``npm.cmd`` style suffixes
        included).

        Parameters
        ----------
        executable : Path
            Resolved executable path.

        Returns
        -------
        bool
            ``True`` when the executable may be spawned.
        """
        absolute = str(executable)
        for pattern in self.exec_allowlist:
            if Path(pattern).is_absolute():
                if absolute == pattern:
                    return True
                continue
            if fnmatch(executable.name, pattern) or fnmatch(executable.stem, pattern):
                return True
        return False


def load_settings(
    settings_factory: Callable[[], SettingsT] | type[SettingsT],
) -> SettingsT:
    """Instantiate settings with structured error handling.

    Parameters
    ----------
    settings_factory : Callable[[], SettingsT] | type[SettingsT]
        Zero-argument callable returning a ``BaseSettings`` instance.

    Returns
    -------
    SettingsT
        Validated settings.

    Raises
    ------
    SettingsError
        Raised when validation fails.
    """
    try:
        return settings_factory()
    except ValidationError as exc:
        settings_name = getattr(settings_factory, "__name__", type(settings_factory).__name__)
        error_dicts = tuple(
            {str(key): _to_jsonable(value) for key, value in err.items()} for err in exc.errors()
        )
        problem = build_problem_details(
            ProblemDetailsParams(
                type=f"{BASE_TYPE_URI}:settings-invalid",
                title="Invalid tooling settings",
                status=500,
                detail="Failed to load signmax-config settings",
                instance=f"urn:signmax-config:settings:{settings_name}:invalid",
                extensions={"errors": list(error_dicts), "settings_class": settings_name},
            )
        )
        message = "Failed to load signmax-config settings"
        raise SettingsError(message, problem=problem, errors=error_dicts) from exc


_SETTINGS_CACHE: dict[str, ToolSettings] = {}


def get_settings() -> ToolSettings:
    """Return the cached settings instance, loading it on first use."""
    cached = _SETTINGS_CACHE.get("default")
    if cached is None:
        cached = load_settings(ToolSettings)
        _SETTINGS_CACHE["default"] = cached
    return cached


def reset_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    _SETTINGS_CACHE.clear()


def _to_jsonable(value: object) -> JsonValue:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(key): _to_jsonable(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, Path):
        return value.as_posix()
    return repr(value)

"""Package manager detection."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Final

__all__ = [
    "LOCKFILES",
    "Manager",
    "USER_AGENT_PREFIXES",
    "detect_manager",
]


class Manager(StrEnum):
    """Package managers the installer knows how to drive."""

    NPM = "npm"
    PNPM = "pnpm"
    BUN = "bun"


# Checked in order; the first match wins.
USER_AGENT_PREFIXES: Final[tuple[tuple[str, Manager], ...]] = (
    ("pnpm/", Manager.PNPM),
    ("bun/", Manager.BUN),
    ("npm/", Manager.NPM),
)

LOCKFILES: Final[tuple[tuple[str, Manager], ...]] = (
    ("pnpm-lock.yaml", Manager.PNPM),
    ("bun.lockb", Manager.BUN),
    ("package-lock.json", Manager.NPM),
)


def detect_manager(
    manager_arg: str | None = None,
    *,
    user_agent: str = "",
    cwd: Path | str | None = None,
) -> str:
    """Determine which package manager governs ``cwd``.

    Resolution order: the explicit ``manager_arg``, then the
    ``npm_config_user_agent`` prefix, then lockfiles in ``cwd``, then npm.
    An explicit choice is returned verbatim, even when it is not a known
    manager; the command builder rejects unsupported values.

    Parameters
    ----------
    manager_arg : str | None, optional
        Caller-supplied manager name (``--manager``).
    user_agent : str, optional
        User agent string recorded by the invoking package manager.
    cwd : Path | str | None, optional
        Directory checked for lockfiles. Defaults to the current directory.

    Returns
    -------
    str
        Manager name; one of :class:`Manager` unless ``manager_arg`` says otherwise.
    """
    if manager_arg:
        return manager_arg

    for prefix, manager in USER_AGENT_PREFIXES:
        if user_agent.startswith(prefix):
            return manager.value

    directory = Path(cwd) if cwd is not None else Path.cwd()
    for lockfile, manager in LOCKFILES:
        if (directory / lockfile).exists():
            return manager.value

    return Manager.NPM.value

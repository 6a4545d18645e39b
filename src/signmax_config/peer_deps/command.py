"""Install command construction.

Every manager is driven with exact-version flags (``--save-exact`` /
``--exact``) so that the pinned peer versions land verbatim in the consumer's
``package.json``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from signmax_config.errors import EmptyPackageListError, UnsupportedManagerError
from signmax_config.peer_deps.detect import Manager
from signmax_config.peer_deps.workspace import find_pnpm_workspace_root

__all__ = ["InstallCommand", "build_install_command", "format_command"]


@dataclass(frozen=True, slots=True)
class InstallCommand:
    """A fully determined package manager invocation."""

    command: str
    args: tuple[str, ...]
    cwd: Path

    @property
    def argv(self) -> tuple[str, ...]:
        """Command followed by its arguments."""
        return (self.command, *self.args)


def build_install_command(
    manager: str,
    packages: Sequence[str],
    *,
    cwd: Path | str | None = None,
) -> InstallCommand:
    """Build the install invocation for ``manager``.

    Parameters
    ----------
    manager : str
        One of ``npm``, ``pnpm`` or ``bun``.
    packages : Sequence[str]
        ``name@version`` specifiers, installed in the given order.
    cwd : Path | str | None, optional
        Directory the install is requested from. Defaults to the current
        directory. For pnpm, a workspace root above it takes over as the
        working directory and ``-w`` is added after ``-D``.

    Returns
    -------
    InstallCommand
        The command, its arguments and the directory to run it in.

    Raises
    ------
    EmptyPackageListError
        When ``packages`` is empty.
    UnsupportedManagerError
        When ``manager`` is not a supported package manager.
    """
    if not packages:
        raise EmptyPackageListError

    base_cwd = Path(cwd) if cwd is not None else Path.cwd()

    if manager == Manager.PNPM:
        workspace_root = find_pnpm_workspace_root(base_cwd)
        flags = ["add", "-D", "--save-exact"]
        if workspace_root is not None:
            flags.insert(2, "-w")
        return InstallCommand(
            command="pnpm",
            args=(*flags, *packages),
            cwd=workspace_root if workspace_root is not None else base_cwd,
        )

    # npm keeps the requested directory even inside a workspace.
    if manager == Manager.NPM:
        return InstallCommand(
            command="npm",
            args=("install", "--save-dev", "--save-exact", *packages),
            cwd=base_cwd,
        )

    if manager == Manager.BUN:
        return InstallCommand(
            command="bun",
            args=("add", "--dev", "--exact", *packages),
            cwd=base_cwd,
        )

    raise UnsupportedManagerError(manager)


def format_command(command: InstallCommand) -> str:
    """Render ``command`` the way it would be typed in a shell.

    >>> format_command(InstallCommand("npm", ("install", "--save-dev", "a@1.0.0"), Path(".")))
    'npm install --save-dev a@1.0.0'
    """
    return " ".join(command.argv)

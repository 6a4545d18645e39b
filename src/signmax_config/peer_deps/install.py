"""Install the pinned peer dependencies into a consumer project.

``prepare_install`` is a pure planning step: it reads the manifest, detects
the package manager and builds the command without touching process state.
``execute`` is the only function that spawns anything. The Typer command
glues both together behind ``signmax-config-peers``.

Examples
--------
>>> from signmax_config.peer_deps.install import run_cli
>>> run_cli(["--dry-run", "--manager", "pnpm"])  # doctest: +SKIP
pnpm add -D --save-exact eslint@9.39.1 prettier@3.6.2
0
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Final

import typer

from signmax_config.errors import PeerDepsError
from signmax_config.logging import get_logger, setup_logging, with_fields
from signmax_config.peer_deps.command import InstallCommand, build_install_command, format_command
from signmax_config.peer_deps.detect import detect_manager
from signmax_config.peer_deps.manifest import load_peer_dependencies
from signmax_config.process import ProcessRunner, ToolExecutionError, get_process_runner
from signmax_config.settings import SettingsError, get_settings

__all__ = [
    "CliInvocation",
    "InstallPlan",
    "app",
    "execute",
    "main",
    "prepare_install",
    "run_cli",
]

PROG_NAME: Final[str] = "signmax-config-peers"
NO_PEERS_MESSAGE: Final[str] = "No peer dependencies found on @signmax/config."
USER_AGENT_ENV: Final[str] = "npm_config_user_agent"
MANAGER_FLAG: Final[str] = "--manager"

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class InstallPlan:
    """Result of :func:`prepare_install`.

    An empty ``packages`` tuple means the manifest declares no peers; every
    other field is ``None`` in that case.
    """

    packages: tuple[str, ...] = ()
    manager: str | None = None
    command: str | None = None
    args: tuple[str, ...] = ()
    cwd: Path | None = None
    printable: str | None = None

    @property
    def is_empty(self) -> bool:
        """``True`` when there is nothing to install."""
        return not self.packages

    def to_command(self) -> InstallCommand:
        """Return the planned invocation.

        Raises
        ------
        PeerDepsError
            When called on an empty plan.
        """
        if self.command is None or self.cwd is None:
            message = "Install plan has no command to run"
            raise PeerDepsError(message)
        return InstallCommand(command=self.command, args=self.args, cwd=self.cwd)


def prepare_install(
    manager_arg: str | None = None,
    *,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    manifest_path: Path | str | None = None,
) -> InstallPlan:
    """Plan the peer install for the project at ``cwd``.

    Parameters
    ----------
    manager_arg : str | None, optional
        Explicit manager name; bypasses detection.
    cwd : Path | str | None, optional
        Consumer directory. Defaults to the current directory.
    env : Mapping[str, str] | None, optional
        Environment holding ``npm_config_user_agent``. Defaults to ``os.environ``.
    manifest_path : Path | str | None, optional
        Manifest to read. Defaults to the shipped ``package.json``.

    Returns
    -------
    InstallPlan
        The planned command, or an empty plan when no peers are declared.

    Raises
    ------
    ManifestError
        When the manifest cannot be read.
    UnsupportedManagerError
        When ``manager_arg`` names an unknown manager.
    """
    base_cwd = Path(cwd) if cwd is not None else Path.cwd()
    environment = os.environ if env is None else env

    packages = load_peer_dependencies(manifest_path)
    if not packages:
        return InstallPlan()

    manager = detect_manager(
        manager_arg,
        user_agent=environment.get(USER_AGENT_ENV, ""),
        cwd=base_cwd,
    )
    command = build_install_command(manager, packages, cwd=base_cwd)
    return InstallPlan(
        packages=tuple(packages),
        manager=manager,
        command=command.command,
        args=command.args,
        cwd=command.cwd,
        printable=format_command(command),
    )


def execute(command: InstallCommand, *, runner: ProcessRunner | None = None) -> int:
    """Run ``command`` with inherited standard streams and wait for it.

    Parameters
    ----------
    command : InstallCommand
        Invocation produced by :func:`build_install_command`.
    runner : ProcessRunner | None, optional
        Runner to use. Defaults to the shared runner.

    Returns
    -------
    int
        ``0``; failures are raised instead.

    Raises
    ------
    ToolExecutionError
        When the executable cannot be spawned or exits with a non-zero status.
    """
    active = runner if runner is not None else get_process_runner()
    result = active.run(command.argv, cwd=command.cwd, check=True)
    return result.returncode


@dataclass(frozen=True, slots=True)
class CliInvocation:
    """Process state handed to the Typer command through ``ctx.obj``."""

    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    cwd: Path = field(default_factory=Path.cwd)


app = typer.Typer(
    help="Install the peer dependencies pinned by signmax-config with exact versions.",
    add_completion=False,
)


@app.command(context_settings={"ignore_unknown_options": True, "allow_extra_args": True})
def install(
    ctx: typer.Context,
    manager: Annotated[
        str | None,
        typer.Option(
            MANAGER_FLAG,
            metavar="NAME",
            help="npm | pnpm | bun (auto-detected by default)",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the install command without running it"),
    ] = False,
    manifest: Annotated[
        Path | None,
        typer.Option("--manifest", metavar="PATH", help="Manifest declaring the peers"),
    ] = None,
) -> None:
    """Install the pinned peer dependencies.

    Raises
    ------
    typer.Exit
        With code 1 when planning or installing fails.
    """
    invocation = ctx.obj if isinstance(ctx.obj, CliInvocation) else CliInvocation()
    logger = with_fields(LOGGER, operation="install", cwd=str(invocation.cwd), dry_run=dry_run)

    try:
        manifest_path = manifest if manifest is not None else get_settings().manifest_path
        plan = prepare_install(
            manager,
            cwd=invocation.cwd,
            env=invocation.env,
            manifest_path=manifest_path,
        )
        if plan.is_empty:
            typer.echo(NO_PEERS_MESSAGE)
            return

        logger.info(
            "Install planned",
            extra={"manager": plan.manager, "packages": list(plan.packages)},
        )
        if dry_run:
            typer.echo(plan.printable)
            return

        typer.echo(f"Running: {plan.printable}")
        execute(plan.to_command())
    except (PeerDepsError, SettingsError, ToolExecutionError) as exc:
        logger.error("Peer install failed", extra={"problem": exc.problem})
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    logger.info("Peer install completed", extra={"manager": plan.manager})


def run_cli(
    args: Sequence[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cwd: Path | str | None = None,
) -> int:
    """Run the installer CLI and return its exit status.

    Unknown flags and stray arguments are ignored, and a trailing ``--manager``
    without a value leaves the manager to auto-detection.

    Parameters
    ----------
    args : Sequence[str] | None, optional
        Command-line arguments. Defaults to ``sys.argv[1:]``.
    env : Mapping[str, str] | None, optional
        Environment to plan against. Defaults to ``os.environ``.
    cwd : Path | str | None, optional
        Consumer directory. Defaults to the current directory.

    Returns
    -------
    int
        ``0`` on success, help, dry run or no peers; ``1`` on any error.
    """
    invocation = CliInvocation(
        env=dict(os.environ) if env is None else env,
        cwd=Path(cwd) if cwd is not None else Path.cwd(),
    )
    argv = _drop_dangling_manager(sys.argv[1:] if args is None else args)
    command = typer.main.get_command(app)
    # Standalone mode reports usage errors itself and always ends in SystemExit.
    try:
        command.main(args=argv, prog_name=PROG_NAME, obj=invocation, standalone_mode=True)
    except SystemExit as exc:
        return 0 if exc.code in (0, None) else 1
    return 0


def _drop_dangling_manager(args: Sequence[str]) -> list[str]:
    """Treat a trailing ``--manager`` without a value as not given."""
    argv = list(args)
    if argv and argv[-1] == MANAGER_FLAG:
        argv.pop()
    return argv


def main() -> None:
    """Console script entry point for ``signmax-config-peers``."""
    try:
        settings = get_settings()
    except SettingsError as exc:
        typer.echo(str(exc), err=True)
        raise SystemExit(1) from exc
    setup_logging(settings.log_level, json_logs=settings.json_logs)
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()

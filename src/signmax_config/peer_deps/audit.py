"""Audit the consumer's installed peer versions against the pinned ones.

The audit runs as a post-install hook, so it never fails the host install:
unresolvable peers and unreadable package manifests are recorded as findings,
and an error in the audit itself is downgraded to a "skipped" warning by
:func:`run_postinstall_audit`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Final

import msgspec
import typer

from signmax_config.logging import get_logger, setup_logging, with_fields
from signmax_config.metrics import record_audit_issues
from signmax_config.peer_deps.manifest import InstalledPackage, load_manifest
from signmax_config.peer_deps.resolver import ModuleResolver, consumer_resolver
from signmax_config.settings import SettingsError, get_settings

__all__ = [
    "AuditResult",
    "MismatchedPeer",
    "MissingPeer",
    "audit_app",
    "audit_peer_dependencies",
    "default_consumer_root",
    "format_audit_message",
    "main",
    "run_postinstall_audit",
]

MESSAGE_PREFIX: Final[str] = "[signmax-config]"
INSTALLER_COMMAND: Final[str] = "signmax-config-peers"
UNKNOWN_VERSION: Final[str] = "unknown"

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class MissingPeer:
    """A pinned peer that could not be resolved from the consumer."""

    name: str
    expected_version: str
    reason: str


@dataclass(frozen=True, slots=True)
class MismatchedPeer:
    """A pinned peer installed at a different (or unreadable) version."""

    name: str
    expected_version: str
    actual_version: str | None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class AuditResult:
    """Outcome of :func:`audit_peer_dependencies`."""

    peers: tuple[tuple[str, str], ...] = ()
    missing: tuple[MissingPeer, ...] = ()
    mismatched: tuple[MismatchedPeer, ...] = ()

    @property
    def has_issues(self) -> bool:
        """``True`` when at least one peer is missing or mismatched."""
        return bool(self.missing or self.mismatched)


def default_consumer_root(
    env: Mapping[str, str] | None = None,
    cwd: Path | str | None = None,
) -> Path:
    """Return the consumer project root for a post-install run.

    ``INIT_CWD`` (set by npm, pnpm and bun to the directory the install was
    started from) wins over ``npm_config_local_prefix``; the current directory
    is the last resort.
    """
    environment = os.environ if env is None else env
    for key in ("INIT_CWD", "npm_config_local_prefix"):
        value = environment.get(key)
        if value:
            return Path(value)
    return Path(cwd) if cwd is not None else Path.cwd()


def audit_peer_dependencies(
    manifest_path: Path | str | None = None,
    consumer_root: Path | str | None = None,
    *,
    resolver: ModuleResolver | None = None,
    env: Mapping[str, str] | None = None,
) -> AuditResult:
    """Compare installed peer versions with the pinned ones.

    Parameters
    ----------
    manifest_path : Path | str | None, optional
        Manifest declaring the peers. Defaults to the shipped ``package.json``.
    consumer_root : Path | str | None, optional
        Consumer project root. Defaults to :func:`default_consumer_root`.
    resolver : ModuleResolver | None, optional
        Strategy locating ``<name>/package.json``. Defaults to a Node-style
        resolver rooted at the consumer.
    env : Mapping[str, str] | None, optional
        Environment used for the default root and ``NODE_PATH``.

    Returns
    -------
    AuditResult
        Peers with the missing and mismatched subsets, in manifest order.

    Raises
    ------
    ManifestError
        When the peer manifest itself cannot be read.
    """
    peers = tuple(load_manifest(manifest_path).peer_entries())
    if not peers:
        return AuditResult(peers=peers)

    environment = os.environ if env is None else env
    if resolver is None:
        root = consumer_root if consumer_root is not None else default_consumer_root(environment)
        resolver = consumer_resolver(root, env=environment)

    missing: list[MissingPeer] = []
    mismatched: list[MismatchedPeer] = []
    for name, expected_version in peers:
        try:
            package_json = resolver.resolve(f"{name}/package.json")
        except Exception as exc:  # noqa: BLE001 - any resolver failure marks the peer missing
            missing.append(MissingPeer(name, expected_version, reason=str(exc)))
            continue

        try:
            installed = msgspec.json.decode(package_json.read_bytes(), type=InstalledPackage)
        except (OSError, msgspec.DecodeError, msgspec.ValidationError) as exc:
            mismatched.append(
                MismatchedPeer(name, expected_version, UNKNOWN_VERSION, reason=str(exc))
            )
            continue

        if installed.version != expected_version:
            actual = None if installed.version is None else str(installed.version)
            mismatched.append(MismatchedPeer(name, expected_version, actual))

    return AuditResult(peers=peers, missing=tuple(missing), mismatched=tuple(mismatched))


def format_audit_message(result: AuditResult) -> str | None:
    """Render the audit findings as a warning block.

    Returns
    -------
    str | None
        ``None`` when nothing is missing or mismatched.
    """
    if not result.has_issues:
        return None

    lines = [f"{MESSAGE_PREFIX} Peer dependency check detected issues:"]
    if result.missing:
        lines.append("  Missing peers:")
        lines.extend(f"    - {item.name}@{item.expected_version}" for item in result.missing)
    if result.mismatched:
        lines.append("  Version mismatches:")
        for item in result.mismatched:
            details = f" (found {item.actual_version})" if item.actual_version else ""
            lines.append(f"    - {item.name}@{item.expected_version}{details}")
    lines.append(f'  Run "{INSTALLER_COMMAND}" to install the correct versions.')
    return "\n".join(lines)


def run_postinstall_audit(
    manifest_path: Path | str | None = None,
    consumer_root: Path | str | None = None,
    *,
    resolver: ModuleResolver | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run the audit and print a warning when peers are out of line.

    Never raises for audit failures: they are reported as a skip notice.

    Returns
    -------
    int
        Always ``0`` so the host install is never aborted.
    """
    logger = with_fields(LOGGER, operation="peer_audit")
    try:
        result = audit_peer_dependencies(
            manifest_path, consumer_root, resolver=resolver, env=env
        )
    except Exception as exc:  # noqa: BLE001 - the hook must not abort the host install
        logger.info("Peer audit skipped", extra={"status": "skipped", "reason": str(exc)})
        typer.echo(f"{MESSAGE_PREFIX} Peer dependency check skipped: {exc}", err=True)
        return 0

    try:
        record_audit_issues(missing=len(result.missing), mismatched=len(result.mismatched))
    except SettingsError as exc:
        logger.warning("Audit metrics not recorded", extra={"reason": str(exc)})
    message = format_audit_message(result)
    logger.info(
        "Peer audit completed",
        extra={
            "peers": len(result.peers),
            "missing": [item.name for item in result.missing],
            "mismatched": [item.name for item in result.mismatched],
        },
    )
    if message:
        typer.echo(message, err=True)
    return 0


ManifestOption = Annotated[
    Path | None,
    typer.Option("--manifest", metavar="PATH", help="Manifest declaring the peers."),
]
ConsumerRootOption = Annotated[
    Path | None,
    typer.Option(
        "--consumer-root",
        metavar="DIR",
        help="Consumer project root (defaults to INIT_CWD, then the current directory).",
    ),
]

audit_app = typer.Typer(
    help="Check installed peer dependency versions against signmax-config's pins.",
    add_completion=False,
)


@audit_app.command()
def check(manifest: ManifestOption = None, consumer_root: ConsumerRootOption = None) -> None:
    """Report missing or mismatched peers; always exits successfully."""
    try:
        manifest_path = manifest if manifest is not None else get_settings().manifest_path
    except SettingsError as exc:
        typer.echo(f"{MESSAGE_PREFIX} Peer dependency check skipped: {exc}", err=True)
        return
    run_postinstall_audit(manifest_path, consumer_root)


def main() -> None:
    """Console script entry point for ``signmax-config-check-peers``."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, json_logs=settings.json_logs)
    except (SettingsError, ValueError) as exc:
        typer.echo(f"{MESSAGE_PREFIX} Peer dependency check skipped: {exc}", err=True)
        return
    audit_app(prog_name="signmax-config-check-peers")


if __name__ == "__main__":
    main()

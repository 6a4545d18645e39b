"""Peer dependency installer and auditor.

Public entry points:

* :func:`prepare_install` / :func:`execute` / :func:`run_cli` install the
  pinned peers with the consumer's package manager.
* :func:`audit_peer_dependencies` / :func:`format_audit_message` /
  :func:`run_postinstall_audit` report peers that are missing or installed at
  another version.
"""

from __future__ import annotations

from signmax_config.peer_deps.audit import (
    AuditResult,
    MismatchedPeer,
    MissingPeer,
    audit_peer_dependencies,
    default_consumer_root,
    format_audit_message,
    run_postinstall_audit,
)
from signmax_config.peer_deps.command import InstallCommand, build_install_command, format_command
from signmax_config.peer_deps.detect import Manager, detect_manager
from signmax_config.peer_deps.install import InstallPlan, execute, prepare_install, run_cli
from signmax_config.peer_deps.manifest import (
    DEFAULT_MANIFEST_PATH,
    PackageManifest,
    load_manifest,
    load_peer_dependencies,
)
from signmax_config.peer_deps.resolver import ModuleResolver, NodeModulesResolver
from signmax_config.peer_deps.workspace import find_pnpm_workspace_root

__all__ = [
    "DEFAULT_MANIFEST_PATH",
    "AuditResult",
    "InstallCommand",
    "InstallPlan",
    "Manager",
    "MismatchedPeer",
    "MissingPeer",
    "ModuleResolver",
    "NodeModulesResolver",
    "PackageManifest",
    "audit_peer_dependencies",
    "build_install_command",
    "default_consumer_root",
    "detect_manager",
    "execute",
    "find_pnpm_workspace_root",
    "format_audit_message",
    "format_command",
    "load_manifest",
    "load_peer_dependencies",
    "prepare_install",
    "run_cli",
    "run_postinstall_audit",
]

"""Tests for signmax_config.peer_deps.resolver."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from signmax_config.errors import PeerResolutionError
from signmax_config.peer_deps.manifest import DEFAULT_MANIFEST_PATH
from signmax_config.peer_deps.resolver import (
    ModuleResolver,
    NodeModulesResolver,
    consumer_resolver,
)

InstallPackage = Callable[[Path, str, str], Path]


class TestNodeModulesResolver:
    """Tests for NodeModulesResolver."""

    def test_is_a_module_resolver(self, tmp_path: Path) -> None:
        """The default resolver satisfies the protocol."""
        assert isinstance(NodeModulesResolver(tmp_path), ModuleResolver)

    def test_resolves_nearest_package(self, tmp_path: Path, install_package: InstallPackage) -> None:
        """The closest node_modules wins over hoisted copies."""
        outer = install_package(tmp_path, "eslint", "8.0.0")
        inner_root = tmp_path / "app"
        inner = install_package(inner_root, "eslint", "9.39.1")

        assert NodeModulesResolver(inner_root).resolve("eslint/package.json") == inner
        assert NodeModulesResolver(tmp_path).resolve("eslint/package.json") == outer

    def test_skips_node_modules_segments(self, tmp_path: Path) -> None:
        """Directories named node_modules are not searched for a nested node_modules."""
        base = tmp_path / "node_modules" / "pkg"
        paths = list(NodeModulesResolver(base).search_paths())
        assert tmp_path / "node_modules" / "node_modules" not in paths
        assert paths[0] == base / "node_modules"
        assert tmp_path / "node_modules" in paths

    def test_global_paths_are_last(self, tmp_path: Path, install_package: InstallPackage) -> None:
        """NODE_PATH style entries are consulted after the ancestors."""
        global_dir = tmp_path / "global"
        install_package(global_dir, "prettier", "3.6.2")
        project = tmp_path / "project"
        project.mkdir()
        resolver = NodeModulesResolver(project, global_paths=(global_dir / "node_modules",))
        assert resolver.resolve("prettier/package.json").parent.name == "prettier"

    def test_missing_module_raises(self, tmp_path: Path) -> None:
        """Unresolvable requests raise PeerResolutionError."""
        with pytest.raises(PeerResolutionError, match="Cannot find module 'nope/package.json'"):
            NodeModulesResolver(tmp_path).resolve("nope/package.json")


class TestConsumerResolver:
    """Tests for consumer_resolver."""

    def test_uses_consumer_with_manifest(self, consumer_project: Path) -> None:
        """A consumer package.json anchors resolution at the consumer."""
        assert consumer_resolver(consumer_project).base_dir == consumer_project

    def test_falls_back_without_manifest(self, tmp_path: Path) -> None:
        """Without a consumer manifest the package's own directory is used."""
        assert consumer_resolver(tmp_path).base_dir == DEFAULT_MANIFEST_PATH.parent

    def test_explicit_fallback(self, tmp_path: Path) -> None:
        """A fallback directory can be supplied."""
        fallback = tmp_path / "fallback"
        assert consumer_resolver(tmp_path, fallback_dir=fallback).base_dir == fallback

    def test_reads_node_path(self, consumer_project: Path, tmp_path: Path) -> None:
        """NODE_PATH entries become global search paths."""
        env = {"NODE_PATH": f"{tmp_path / 'a'}:{tmp_path / 'b'}"}
        resolver = consumer_resolver(consumer_project, env=env)
        assert resolver.global_paths == (tmp_path / "a", tmp_path / "b")

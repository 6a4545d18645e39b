"""Shared pytest fixtures for the signmax-config test suite."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from signmax_config.settings import reset_settings_cache

FIXTURES_DIR = Path(__file__).parent / "peer_deps" / "fixtures"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop cached settings and ``SIGNMAX_CONFIG_*`` overrides around every test."""
    for key in ("MANIFEST_PATH", "LOG_LEVEL", "JSON_LOGS", "METRICS_ENABLED", "EXEC_ALLOWLIST"):
        monkeypatch.delenv(f"SIGNMAX_CONFIG_{key}", raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def fixture_path() -> Callable[[str], Path]:
    """Return a helper resolving files under ``tests/peer_deps/fixtures``."""

    def _resolve(relative: str) -> Path:
        return FIXTURES_DIR / relative

    return _resolve


@pytest.fixture
def manifest_with_peers(fixture_path: Callable[[str], Path]) -> Path:
    """Manifest pinning ``eslint@9.39.1`` and ``prettier@3.6.2``."""
    return fixture_path("manifest-with-peers.json")


@pytest.fixture
def manifest_no_peers(fixture_path: Callable[[str], Path]) -> Path:
    """Manifest without a ``peerDependencies`` table."""
    return fixture_path("manifest-no-peers.json")


@pytest.fixture
def consumer_project(tmp_path: Path) -> Path:
    """Create an empty consumer project carrying its own ``package.json``."""
    root = tmp_path / "consumer"
    root.mkdir()
    (root / "package.json").write_text(
        json.dumps({"name": "example", "version": "1.0.0"}), encoding="utf-8"
    )
    return root


@pytest.fixture
def install_package() -> Callable[[Path, str, str], Path]:
    """Return a helper writing ``node_modules/<name>/package.json`` under a root."""

    def _install(root: Path, name: str, version: str) -> Path:
        package_dir = root.joinpath("node_modules", *name.split("/"))
        package_dir.mkdir(parents=True, exist_ok=True)
        manifest = package_dir / "package.json"
        manifest.write_text(json.dumps({"name": name, "version": version}), encoding="utf-8")
        return manifest

    return _install


@pytest.fixture
def pnpm_workspace(tmp_path: Path) -> tuple[Path, Path]:
    """Create a pnpm workspace and return ``(workspace_root, package_dir)``."""
    workspace = tmp_path / "workspace"
    package_dir = workspace / "packages" / "app"
    package_dir.mkdir(parents=True)
    (workspace / "pnpm-workspace.yaml").write_text("packages:\n  - packages/*\n", encoding="utf-8")
    return workspace, package_dir

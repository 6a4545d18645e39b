"""Tests for signmax_config.peer_deps.manifest."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from signmax_config.errors import ErrorCode, ManifestError
from signmax_config.peer_deps.manifest import (
    DEFAULT_MANIFEST_PATH,
    load_manifest,
    load_peer_dependencies,
)


class TestLoadPeerDependencies:
    """Tests for load_peer_dependencies."""

    def test_returns_pinned_peers(self, manifest_with_peers: Path) -> None:
        """Specifiers are name@version in manifest order."""
        assert load_peer_dependencies(manifest_with_peers) == ["eslint@9.39.1", "prettier@3.6.2"]

    def test_handles_missing_peers(self, manifest_no_peers: Path) -> None:
        """A manifest without peerDependencies yields no specifiers."""
        assert load_peer_dependencies(manifest_no_peers) == []

    def test_preserves_insertion_order(self, tmp_path: Path) -> None:
        """Order follows the manifest, not the alphabet."""
        manifest = tmp_path / "package.json"
        manifest.write_text(
            json.dumps({"peerDependencies": {"zod": "3.0.0", "ajv": "8.0.0", "@scope/x": "1.0.0"}}),
            encoding="utf-8",
        )
        assert load_peer_dependencies(manifest) == ["zod@3.0.0", "ajv@8.0.0", "@scope/x@1.0.0"]

    def test_empty_peer_table(self, tmp_path: Path) -> None:
        """An explicit empty table yields no specifiers."""
        manifest = tmp_path / "package.json"
        manifest.write_text(json.dumps({"peerDependencies": {}}), encoding="utf-8")
        assert load_peer_dependencies(manifest) == []

    def test_null_peer_table(self, tmp_path: Path) -> None:
        """A null table means no peers, like an absent one."""
        manifest = tmp_path / "package.json"
        manifest.write_text(json.dumps({"peerDependencies": None}), encoding="utf-8")
        assert load_peer_dependencies(manifest) == []

    def test_top_level_fields_are_not_validated(self, tmp_path: Path) -> None:
        """Only the peer table is typed; name and version are left as found."""
        manifest = tmp_path / "package.json"
        manifest.write_text(
            json.dumps({"name": None, "version": 3, "peerDependencies": {"a": "1.0.0"}}),
            encoding="utf-8",
        )
        assert load_peer_dependencies(manifest) == ["a@1.0.0"]

    def test_shipped_manifest_pins_exact_versions(self) -> None:
        """The bundled manifest declares peers, each pinned to an exact version."""
        specifiers = load_peer_dependencies()
        assert specifiers
        assert DEFAULT_MANIFEST_PATH.name == "package.json"
        for specifier in specifiers:
            _, _, version = specifier.rpartition("@")
            assert version
            assert not version.startswith(("^", "~", ">", "<", "*"))


class TestLoadManifest:
    """Tests for load_manifest error handling."""

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """An unreadable manifest raises ManifestError."""
        missing = tmp_path / "nope.json"
        with pytest.raises(ManifestError) as exc_info:
            load_manifest(missing)
        error = exc_info.value
        assert error.path == missing
        assert error.code == ErrorCode.MANIFEST_INVALID
        assert error.problem["manifest_path"] == str(missing)

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Malformed JSON raises ManifestError naming the file."""
        manifest = tmp_path / "package.json"
        manifest.write_text("{not json", encoding="utf-8")
        with pytest.raises(ManifestError, match="Invalid manifest"):
            load_manifest(manifest)

    def test_non_string_version_raises(self, tmp_path: Path) -> None:
        """Peer versions must be strings."""
        manifest = tmp_path / "package.json"
        manifest.write_text(json.dumps({"peerDependencies": {"eslint": 9}}), encoding="utf-8")
        with pytest.raises(ManifestError):
            load_manifest(manifest)

    def test_unknown_fields_are_ignored(self, tmp_path: Path) -> None:
        """Other package.json keys do not interfere with decoding."""
        manifest = tmp_path / "package.json"
        manifest.write_text(
            json.dumps({"name": "x", "scripts": {"lint": "eslint ."}, "peerDependencies": {"a": "1"}}),
            encoding="utf-8",
        )
        decoded = load_manifest(manifest)
        assert decoded.name == "x"
        assert decoded.peer_entries() == [("a", "1")]

"""Tests for signmax_config.peer_deps.command."""

from __future__ import annotations

from pathlib import Path

import pytest

from signmax_config.errors import EmptyPackageListError, UnsupportedManagerError
from signmax_config.peer_deps.command import build_install_command, format_command


class TestBuildInstallCommand:
    """Tests for build_install_command."""

    def test_supports_npm(self, tmp_path: Path) -> None:
        """npm installs exact dev dependencies in place."""
        result = build_install_command("npm", ["eslint@9.39.1"], cwd=tmp_path)
        assert result.command == "npm"
        assert result.args == ("install", "--save-dev", "--save-exact", "eslint@9.39.1")
        assert result.cwd == tmp_path
        assert format_command(result) == "npm install --save-dev --save-exact eslint@9.39.1"

    def test_supports_bun(self, tmp_path: Path) -> None:
        """bun uses its own flag spelling."""
        result = build_install_command("bun", ["eslint@9.39.1", "prettier@3.6.2"], cwd=tmp_path)
        assert result.command == "bun"
        assert result.args == ("add", "--dev", "--exact", "eslint@9.39.1", "prettier@3.6.2")
        assert result.cwd == tmp_path

    def test_pnpm_outside_workspace(self, tmp_path: Path) -> None:
        """Without a workspace pnpm runs in place and without -w."""
        project = tmp_path / "solo"
        project.mkdir()
        result = build_install_command("pnpm", ["eslint@9.39.1"], cwd=project)
        assert result.args[:3] == ("add", "-D", "--save-exact")
        if result.cwd == project:
            assert "-w" not in result.args

    def test_adds_w_flag_in_pnpm_workspaces(self, pnpm_workspace: tuple[Path, Path]) -> None:
        """Inside a workspace pnpm targets the root with -w after -D."""
        workspace, package_dir = pnpm_workspace
        result = build_install_command("pnpm", ["eslint@9.39.1"], cwd=package_dir)
        assert result.command == "pnpm"
        assert result.args == ("add", "-D", "-w", "--save-exact", "eslint@9.39.1")
        assert result.cwd == workspace

    def test_npm_ignores_pnpm_workspace(self, pnpm_workspace: tuple[Path, Path]) -> None:
        """npm is not redirected to the workspace root."""
        _, package_dir = pnpm_workspace
        result = build_install_command("npm", ["eslint@9.39.1"], cwd=package_dir)
        assert result.cwd == package_dir
        assert "-w" not in result.args

    def test_packages_keep_their_order(self, tmp_path: Path) -> None:
        """Specifiers are appended after the flags in the order given."""
        packages = ["b@1.0.0", "a@2.0.0", "c@3.0.0"]
        result = build_install_command("npm", packages, cwd=tmp_path)
        assert list(result.args[-3:]) == packages

    def test_throws_on_unsupported_manager(self, tmp_path: Path) -> None:
        """Unknown managers are rejected with the supported set in the message."""
        with pytest.raises(UnsupportedManagerError, match="Unsupported package manager") as exc_info:
            build_install_command("yarn", ["eslint@9.39.1"], cwd=tmp_path)
        message = str(exc_info.value)
        assert "yarn" in message
        assert "npm, pnpm, bun" in message
        assert exc_info.value.problem["manager"] == "yarn"

    @pytest.mark.parametrize("manager", ["npm", "pnpm", "bun", "yarn"])
    def test_rejects_empty_package_list(self, tmp_path: Path, manager: str) -> None:
        """An empty package list is a caller error for every manager."""
        with pytest.raises(EmptyPackageListError, match="No peer dependencies to install"):
            build_install_command(manager, [], cwd=tmp_path)

    def test_argv_prepends_command(self, tmp_path: Path) -> None:
        """argv is the command followed by its arguments."""
        result = build_install_command("bun", ["x@1.0.0"], cwd=tmp_path)
        assert result.argv == ("bun", "add", "--dev", "--exact", "x@1.0.0")

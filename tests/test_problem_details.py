"""Tests for signmax_config.problem_details."""

from __future__ import annotations

from pathlib import Path

from signmax_config.problem_details import (
    ProblemDetailsParams,
    build_problem_details,
    coerce_optional_dict,
    tool_disallowed_problem_details,
    tool_failure_problem_details,
    tool_missing_problem_details,
)


class TestBuildProblemDetails:
    """Tests for build_problem_details."""

    def test_flattens_extensions(self) -> None:
        """Extensions appear as top-level members without overriding core ones."""
        problem = build_problem_details(
            ProblemDetailsParams(
                type="urn:x",
                title="Title",
                status=500,
                detail="detail",
                instance="urn:i",
                extensions={"status": 200, "extra": [1, 2]},
            )
        )
        assert problem["status"] == 500
        assert problem["extra"] == [1, 2]

    def test_coerce_optional_dict(self) -> None:
        """Empty mappings collapse to None."""
        assert coerce_optional_dict(None) is None
        assert coerce_optional_dict({}) is None
        assert coerce_optional_dict({"a": 1}) == {"a": 1}


class TestToolProblemDetails:
    """Tests for the subprocess failure builders."""

    def test_missing(self) -> None:
        """The command falls back to the executable name."""
        problem = tool_missing_problem_details([], executable="pnpm", detail="not found")
        assert problem["command"] == ["pnpm"]
        assert problem["instance"] == "urn:tool:pnpm:missing"

    def test_disallowed(self) -> None:
        """The allow list is reported."""
        problem = tool_disallowed_problem_details(
            ["/usr/bin/yarn", "add"], executable=Path("/usr/bin/yarn"), allowlist=("npm",)
        )
        assert problem["type"] == "urn:signmax-config:problem:tool-exec-disallowed"
        assert problem["executable"] == "/usr/bin/yarn"
        assert problem["allowlist"] == ["npm"]

    def test_failure(self) -> None:
        """The exit status is recorded in the instance and the payload."""
        problem = tool_failure_problem_details(
            ["/usr/bin/npm", "install"], returncode=2, detail="npm exited with code 2"
        )
        assert problem["instance"] == "urn:tool:npm:exit-2"
        assert problem["returncode"] == 2

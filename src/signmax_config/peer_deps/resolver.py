"""Module resolution strategies used by the peer auditor.

The auditor asks a resolver for ``<name>/package.json`` and reads whatever file
comes back. :class:`NodeModulesResolver` reproduces Node's lookup for bare
specifiers: starting at the base directory it checks ``node_modules`` in every
ancestor, then any global ``NODE_PATH`` entries. Tests inject their own
:class:`ModuleResolver` instead of building a ``node_modules`` tree.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from signmax_config.errors import PeerResolutionError
from signmax_config.peer_deps.manifest import DEFAULT_MANIFEST_PATH

__all__ = [
    "ModuleResolver",
    "NodeModulesResolver",
    "consumer_resolver",
]


@runtime_checkable
class ModuleResolver(Protocol):
    """Resolve a module request to a file path.

    Implementations raise :class:`~signmax_config.errors.PeerResolutionError`
    (or any other exception) when the request cannot be satisfied.
    """

    def resolve(self, request: str) -> Path: ...


@dataclass(frozen=True, slots=True)
class NodeModulesResolver:
    """Node-style ``node_modules`` lookup rooted at ``base_dir``."""

    base_dir: Path
    global_paths: tuple[Path, ...] = ()

    def search_paths(self) -> Iterator[Path]:
        """Yield candidate ``node_modules`` directories, nearest first."""
        current = Path(os.path.abspath(self.base_dir))
        for directory in (current, *current.parents):
            if directory.name == "node_modules":
                continue
            yield directory / "node_modules"
        yield from self.global_paths

    def resolve(self, request: str) -> Path:
        """Return the first existing file matching ``request``.

        Raises
        ------
        PeerResolutionError
            When no search path contains ``request``.
        """
        for root in self.search_paths():
            candidate = root / request
            if candidate.is_file():
                return candidate
        raise PeerResolutionError(request, base_dir=self.base_dir)


def consumer_resolver(
    consumer_root: Path | str,
    *,
    env: Mapping[str, str] | None = None,
    fallback_dir: Path | None = None,
) -> NodeModulesResolver:
    """Return a resolver scoped to the consumer project.

    The consumer's own directory is used when it holds a ``package.json``;
    otherwise resolution falls back to the directory of the shipped manifest,
    which is where this package itself is installed.

    Parameters
    ----------
    consumer_root : Path | str
        Root of the consuming project.
    env : Mapping[str, str] | None, optional
        Environment consulted for ``NODE_PATH``.
    fallback_dir : Path | None, optional
        Base directory used when ``consumer_root`` has no manifest.

    Returns
    -------
    NodeModulesResolver
        Resolver rooted at the chosen base directory.
    """
    root = Path(consumer_root)
    if (root / "package.json").is_file():
        base_dir = root
    else:
        base_dir = fallback_dir if fallback_dir is not None else DEFAULT_MANIFEST_PATH.parent
    return NodeModulesResolver(base_dir=base_dir, global_paths=_node_path_entries(env or {}))


def _node_path_entries(env: Mapping[str, str]) -> tuple[Path, ...]:
    raw: Sequence[str] = env.get("NODE_PATH", "").split(os.pathsep)
    return tuple(Path(entry) for entry in raw if entry)

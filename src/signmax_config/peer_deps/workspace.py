"""pnpm workspace root discovery."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

__all__ = ["WORKSPACE_MARKERS", "find_pnpm_workspace_root"]

WORKSPACE_MARKERS: Final[tuple[str, ...]] = ("pnpm-workspace.yaml", "pnpm-workspace.yml")


def find_pnpm_workspace_root(start: Path | str) -> Path | None:
    """Return the closest directory at or above ``start`` holding a workspace marker.

    The walk is lexical (``start`` is made absolute and normalised, symlinks
    are not followed) and stops at the filesystem root, where a directory's parent is
    the directory itself.

    Parameters
    ----------
    start : Path | str
        Directory the search starts from.

    Returns
    -------
    Path | None
        The workspace root, or ``None`` when no ancestor carries a marker.
    """
    current = Path(os.path.abspath(start))
    while True:
        if any((current / marker).exists() for marker in WORKSPACE_MARKERS):
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent

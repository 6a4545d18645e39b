"""Shared lint, format and type-check presets with pinned peer tooling."""

from __future__ import annotations

__version__ = "1.4.0"

__all__ = ["__version__"]

"""Package manifest loading.

The manifest is the ``package.json`` shipped inside :mod:`signmax_config`. Its
``peerDependencies`` table is the single source of truth for the tool versions
the installer pins and the auditor checks. The file is decoded on every call;
nothing is cached between invocations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Final

import msgspec

from signmax_config.errors import ManifestError

__all__ = [
    "DEFAULT_MANIFEST_PATH",
    "InstalledPackage",
    "PackageManifest",
    "load_manifest",
    "load_peer_dependencies",
    "peer_specifiers",
    "resolve_manifest_path",
]

DEFAULT_MANIFEST_PATH: Final[Path] = Path(__file__).resolve().parent.parent / "package.json"


class PackageManifest(msgspec.Struct, kw_only=True):
    """The subset of ``package.json`` the peer tooling reads.

    ``peerDependencies`` may be absent or ``null``; both mean "no peers".
    """

    name: Any = None
    version: Any = None
    peer_dependencies: dict[str, str] | None = msgspec.field(
        default=None, name="peerDependencies"
    )

    def peer_entries(self) -> list[tuple[str, str]]:
        """Return ``(name, version)`` pairs in manifest order."""
        return list((self.peer_dependencies or {}).items())


class InstalledPackage(msgspec.Struct):
    """An installed package's manifest as seen by the auditor.

    ``version`` is left as a raw value: a manifest without a string version
    still decodes, and is reported as a mismatch with an unknown version.
    """

    version: Any = None


def resolve_manifest_path(manifest_path: Path | str | None) -> Path:
    """Return ``manifest_path`` or the shipped manifest when it is ``None``."""
    return Path(manifest_path) if manifest_path is not None else DEFAULT_MANIFEST_PATH


def load_manifest(manifest_path: Path | str | None = None) -> PackageManifest:
    """Read and decode a package manifest.

    Parameters
    ----------
    manifest_path : Path | str | None, optional
        Manifest location. Defaults to :data:`DEFAULT_MANIFEST_PATH`.

    Returns
    -------
    PackageManifest
        Decoded manifest; :meth:`PackageManifest.peer_entries` is empty when the
        table is absent or ``null``.

    Raises
    ------
    ManifestError
        When the file cannot be read or is not a valid manifest.
    """
    path = resolve_manifest_path(manifest_path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        message = f"Cannot read manifest {path}: {exc.strerror or exc}"
        raise ManifestError(message, path=path) from exc
    try:
        return msgspec.json.decode(raw, type=PackageManifest)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        message = f"Invalid manifest {path}: {exc}"
        raise ManifestError(message, path=path) from exc


def peer_specifiers(manifest: PackageManifest) -> list[str]:
    """Return ``name@version`` specifiers in manifest order."""
    return [f"{name}@{version}" for name, version in manifest.peer_entries()]


def load_peer_dependencies(manifest_path: Path | str | None = None) -> list[str]:
    """Load the pinned peer specifiers from ``manifest_path``."""
    return peer_specifiers(load_manifest(manifest_path))

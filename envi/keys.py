from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union


def derive_secret(manifest: Union[bytes, str]) -> str:
    """Derive the shared secret for a project from its manifest file contents.

    Identical manifests give identical secrets, so colleagues with the same
    manifest can open each other's blobs without exchanging a password. The
    digest only normalises length; the envelope stretches it with Argon2id.
    """
    if isinstance(manifest, str):
        manifest = manifest.encode("utf-8")
    return hashlib.md5(manifest).hexdigest()


def find_manifest(repo_root: Union[str, Path], manifest_files: Iterable[str]) -> Optional[Path]:
    root = Path(repo_root)
    for name in manifest_files:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def manifest_secret(
    repo_root: Union[str, Path], manifest_files: Iterable[str]
) -> Optional[Tuple[Path, str]]:
    """Return ``(manifest_path, secret)`` for the first manifest present, else None."""
    path = find_manifest(repo_root, manifest_files)
    if path is None:
        return None
    return path, derive_secret(path.read_bytes())

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import List, Optional, Union

from .constants import IGNORED_DIRS, VCS_MARKERS


def _has_vcs_marker(directory: Path) -> bool:
    return any((directory / marker).exists() for marker in VCS_MARKERS)


def find_repo_root(start: Union[str, Path, None] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: cwd) to the first directory holding a VCS marker."""
    current = Path(os.path.abspath(str(start or os.getcwd())))
    while True:
        if _has_vcs_marker(current):
            return current
        if current.parent == current:
            return None
        current = current.parent


def is_env_file(name: str) -> bool:
    return name == ".env" or fnmatch.fnmatchcase(name, ".env.*")


def find_env_files(repo_root: Union[str, Path]) -> List[str]:
    """Return sorted POSIX paths, relative to ``repo_root``, of ``.env`` and ``.env.*`` files.

    ``node_modules`` and ``.git`` directories are not descended into.
    """
    root = str(repo_root)
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
        for fn in filenames:
            full = os.path.join(dirpath, fn)
            if is_env_file(fn) and os.path.isfile(full):
                found.append(Path(os.path.relpath(full, root)).as_posix())
    return sorted(found)

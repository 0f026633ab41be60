from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Union


def norm_path(p: str) -> str:
    """Normalize stored env file paths to a canonical forward-slash form.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    return "/".join(parts)


def resolve_in_root(root: Union[str, Path], stored: str) -> Path:
    """Map a stored relative path onto ``root``; absolute paths are refused."""
    if PurePosixPath(stored.replace("\\", "/")).is_absolute() or Path(stored).is_absolute():
        raise ValueError(f"Path must be relative: {stored}")
    rel = norm_path(stored)
    if not rel:
        raise ValueError("Path is empty")
    return Path(root) / rel

"""Versioned store document holding the captured env files of one repository.

On disk (``$ENVI_HOME/store/<package>.json``)::

    {
      "__envi_version": 1,
      "metadata": {"updated_from": "/abs/repo", "updated_at": "2026-01-01T00:00:00.000Z"},
      "files": [{"path": ".env", "env": {"__l_00": "# db", "DB_HOST": "localhost"}}]
    }

Files are always sorted by path, so two captures of the same files serialize
identically regardless of discovery order.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from .constants import (
    DEFAULT_ENVI_HOME,
    ENVI_HOME_ENV,
    STORE_DIRNAME,
    STORE_SUFFIX,
    STORE_VERSION,
    STORE_VERSION_KEY,
)
from .dotenv import EnvFile, from_mapping, to_mapping
from .errors import RepositoryError, StoreFieldError, StoreFormatError, StoreVersionError
from .pathutil import norm_path


@dataclass(frozen=True)
class StoreFile:
    path: str
    env: EnvFile


@dataclass(frozen=True)
class StoreMetadata:
    updated_from: str
    updated_at: str


@dataclass(frozen=True)
class StoreDocument:
    metadata: StoreMetadata
    files: Tuple[StoreFile, ...] = field(default_factory=tuple)
    version: int = STORE_VERSION

    @classmethod
    def create(
        cls,
        repo_root: Union[str, Path],
        files: Iterable[StoreFile],
        *,
        now: Optional[datetime] = None,
    ) -> "StoreDocument":
        return cls(
            metadata=StoreMetadata(
                updated_from=os.path.abspath(str(repo_root)),
                updated_at=_timestamp(now),
            ),
            files=sort_files(files),
        )

    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    def to_dict(self) -> Dict[str, Any]:
        return {
            STORE_VERSION_KEY: self.version,
            "metadata": {
                "updated_from": self.metadata.updated_from,
                "updated_at": self.metadata.updated_at,
            },
            "files": [{"path": f.path, "env": to_mapping(f.env)} for f in self.files],
        }


def _timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sort_files(files: Iterable[StoreFile]) -> Tuple[StoreFile, ...]:
    return tuple(sorted(files, key=lambda f: f.path))


def files_equal(a: StoreDocument, b: StoreDocument) -> bool:
    """Compare the captured files only; metadata such as timestamps is ignored."""
    return sort_files(a.files) == sort_files(b.files)


def dumps(doc: StoreDocument) -> str:
    return json.dumps(doc.to_dict(), indent=2, ensure_ascii=False) + "\n"


def _parse_file_entry(i: int, raw: Any) -> StoreFile:
    if not isinstance(raw, dict):
        raise StoreFieldError(f"files[{i}]", f"files[{i}] must be an object")
    path = raw.get("path")
    if not isinstance(path, str) or not path:
        raise StoreFieldError(f"files[{i}].path")
    env = raw.get("env")
    if not isinstance(env, dict):
        raise StoreFieldError(f"files[{i}].env")
    for key, value in env.items():
        if not isinstance(value, str):
            raise StoreFieldError(
                f"files[{i}].env", f"files[{i}].env[{key!r}] must be a string, got {type(value).__name__}"
            )
    return StoreFile(path=path, env=from_mapping(env))


def from_dict(raw: Any) -> StoreDocument:
    """Validate a decoded store document.

    Raises:
        StoreFormatError: ``raw`` is not an object.
        StoreVersionError: ``__envi_version`` is missing or not the supported version.
        StoreFieldError: ``files`` or ``metadata`` is missing or malformed.
    """
    if not isinstance(raw, dict):
        raise StoreFormatError("Store document must be an object at the top level")
    version = raw.get(STORE_VERSION_KEY)
    if version != STORE_VERSION or isinstance(version, bool):
        raise StoreVersionError(version, STORE_VERSION)
    files = raw.get("files")
    if not isinstance(files, list):
        raise StoreFieldError("files")
    meta = raw.get("metadata")
    if not isinstance(meta, dict):
        raise StoreFieldError("metadata")
    for name in ("updated_from", "updated_at"):
        if not isinstance(meta.get(name), str):
            raise StoreFieldError(f"metadata.{name}")
    return StoreDocument(
        metadata=StoreMetadata(updated_from=meta["updated_from"], updated_at=meta["updated_at"]),
        files=sort_files(_parse_file_entry(i, f) for i, f in enumerate(files)),
        version=version,
    )


def loads(text: str) -> StoreDocument:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StoreFormatError(f"Store document is not valid JSON: {exc}") from exc
    return from_dict(raw)


# -------- Persistence --------

def envi_home() -> Path:
    return Path(os.environ.get(ENVI_HOME_ENV) or DEFAULT_ENVI_HOME).expanduser()


def storage_dir() -> Path:
    return envi_home() / STORE_DIRNAME


def storage_filename(repo_root: Union[str, Path], package_name: Optional[str] = None) -> str:
    """``<package>.json``, falling back to the repository folder name.

    Scoped names such as ``@org/name`` keep their slash and land in a
    subdirectory of the store.
    """
    name = package_name or Path(os.path.abspath(str(repo_root))).name
    try:
        name = norm_path(name)
    except ValueError as exc:
        raise RepositoryError(f"Unusable store name {name!r}: {exc}") from exc
    if not name:
        raise RepositoryError("Cannot derive a store name for this repository")
    return f"{name}{STORE_SUFFIX}"


def storage_path(repo_root: Union[str, Path], package_name: Optional[str] = None) -> Path:
    return storage_dir() / storage_filename(repo_root, package_name)


def read(path: Union[str, Path]) -> StoreDocument:
    return loads(Path(path).read_text(encoding="utf-8"))


def write(path: Union[str, Path], doc: StoreDocument) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(doc), encoding="utf-8")


def save(
    repo_root: Union[str, Path],
    files: Iterable[StoreFile],
    package_name: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Tuple[Path, bool]:
    """Write the captured files for ``repo_root`` to the store.

    Returns the store path and whether it was written; an existing document
    holding the same files is left untouched. An unreadable document is
    replaced, but one written in another store version is not.

    Raises:
        StoreVersionError: The existing document has an unsupported version.
    """
    path = storage_path(repo_root, package_name)
    doc = StoreDocument.create(repo_root, files, now=now)
    if path.exists():
        try:
            existing: Optional[StoreDocument] = read(path)
        except StoreVersionError:
            raise
        except StoreFormatError:
            existing = None
        if existing is not None and files_equal(existing, doc):
            return path, False
    write(path, doc)
    return path, True

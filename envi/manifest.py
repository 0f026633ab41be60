"""Package name extraction from project manifest files.

The package name keys the store file, so one repository maps to the same
store entry on every machine even when checked out under another folder name.
"""

from __future__ import annotations

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union

Extractor = Callable[[str], Optional[str]]

_GRADLE_NAME = re.compile(r"""rootProject\.name\s*=\s*["']([^"']+)["']""")
_GO_MODULE = re.compile(r"^module\s+(.+)$", re.MULTILINE)
_PUBSPEC_NAME = re.compile(r"""^name:\s*["']?([^"'\s#]+)["']?""", re.MULTILINE)


def _str_or_none(value: object) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _json_name(text: str) -> Optional[str]:
    data = json.loads(text)
    return _str_or_none(data.get("name")) if isinstance(data, dict) else None


def _go_mod(text: str) -> Optional[str]:
    m = _GO_MODULE.search(text)
    if not m:
        return None
    # "github.com/user/repo" -> "repo"
    return _str_or_none(m.group(1).strip().split("/")[-1])


def _cargo_toml(text: str) -> Optional[str]:
    return _str_or_none(tomllib.loads(text).get("package", {}).get("name"))


def _pyproject_toml(text: str) -> Optional[str]:
    return _str_or_none(tomllib.loads(text).get("project", {}).get("name"))


def _pubspec_yaml(text: str) -> Optional[str]:
    m = _PUBSPEC_NAME.search(text)
    return m.group(1) if m else None


def _settings_gradle(text: str) -> Optional[str]:
    m = _GRADLE_NAME.search(text)
    return m.group(1) if m else None


def _pom_xml(text: str) -> Optional[str]:
    root = ET.fromstring(text)
    for child in root:
        # Maven tags are namespaced: "{http://maven.apache.org/POM/4.0.0}artifactId"
        if child.tag.rsplit("}", 1)[-1] == "artifactId":
            return _str_or_none((child.text or "").strip())
    return None


PACKAGE_EXTRACTORS: Dict[str, Extractor] = {
    "package.json": _json_name,
    "composer.json": _json_name,
    "go.mod": _go_mod,
    "Cargo.toml": _cargo_toml,
    "pyproject.toml": _pyproject_toml,
    "pubspec.yaml": _pubspec_yaml,
    "settings.gradle.kts": _settings_gradle,
    "settings.gradle": _settings_gradle,
    "pom.xml": _pom_xml,
}


def extract_package_name(repo_root: Union[str, Path], filename: str) -> Optional[str]:
    """Read ``filename`` under ``repo_root`` and return its package name.

    Missing files, unknown manifest types and unparsable content all yield
    None so the caller can move on to the next candidate.
    """
    extractor = PACKAGE_EXTRACTORS.get(filename)
    path = Path(repo_root) / filename
    if extractor is None or not path.is_file():
        return None
    try:
        return extractor(path.read_text(encoding="utf-8"))
    except (ValueError, ET.ParseError, AttributeError, UnicodeDecodeError):
        return None


def get_package_name(repo_root: Union[str, Path], manifest_files: Iterable[str]) -> Optional[str]:
    for filename in manifest_files:
        name = extract_package_name(repo_root, filename)
        if name:
            return name
    return None

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Union

from .constants import REDACTED_PLACEHOLDER
from .dotenv import EnvFile, Variable, is_synthetic_key

EnvLike = Union[EnvFile, Mapping[str, str]]


@dataclass
class RedactionResult:
    redacted: EnvLike
    redacted_keys: List[str]


def apply_redaction(env: EnvLike, names: Iterable[str]) -> RedactionResult:
    """Replace the values of variables named in ``names`` with the placeholder.

    Comments and blank lines pass through untouched. ``env`` is not modified;
    a mapping-form input yields a mapping-form result.

    Args:
        env: Parsed env file or its mapping form.
        names: Variable names to redact (exact, case-sensitive match); a list
            or other collection of names, never a single string.

    Returns:
        The redacted env and the redacted keys in encounter order.

    Raises:
        TypeError: ``names`` is a single string.
    """
    if isinstance(names, str):
        raise TypeError("names must be a collection of variable names, not a str")
    names = set(names)
    redacted_keys: List[str] = []

    if isinstance(env, EnvFile):
        entries = []
        for entry in env:
            if isinstance(entry, Variable) and entry.key in names:
                entry = replace(entry, value=REDACTED_PLACEHOLDER)
                redacted_keys.append(entry.key)
            entries.append(entry)
        return RedactionResult(EnvFile(entries), redacted_keys)

    out: Dict[str, str] = {}
    for key, value in env.items():
        if not is_synthetic_key(key) and key in names:
            value = REDACTED_PLACEHOLDER
            redacted_keys.append(key)
        out[key] = value
    return RedactionResult(out, redacted_keys)


def merge_redacted_values(stored: EnvLike, existing: EnvLike) -> EnvLike:
    """Fill placeholders in ``stored`` with real values from ``existing``.

    ``stored`` decides order and key set. A placeholder stays in place when
    ``existing`` does not have the key.
    """
    if isinstance(stored, EnvFile):
        entries = []
        for entry in stored:
            if (
                isinstance(entry, Variable)
                and entry.value == REDACTED_PLACEHOLDER
                and entry.key in existing
            ):
                entry = replace(entry, value=existing[entry.key])
            entries.append(entry)
        return EnvFile(entries)

    merged: Dict[str, str] = {}
    for key, value in stored.items():
        if is_synthetic_key(key):
            merged[key] = value
        elif value == REDACTED_PLACEHOLDER and key in existing:
            merged[key] = existing[key]
        else:
            merged[key] = value
    return merged


def count_redacted(env: EnvFile) -> int:
    return sum(1 for v in env.variables() if v.value == REDACTED_PLACEHOLDER)

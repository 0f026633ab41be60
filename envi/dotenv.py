"""Comment-preserving reader/writer for ``.env`` files.

A parsed file is an :class:`EnvFile`: an ordered sequence of entries, each one
of :class:`Variable` (``KEY=value`` with an optional inline ``# comment``),
:class:`Comment` (a full ``#`` line) or :class:`Blank`. Parsing is best effort
and never raises on malformed lines; they are dropped.

The store and the encrypted blob persist an env file in its *mapping form*, an
ordered ``str -> str`` dict where non-data lines are encoded under synthetic
keys (``__l_NN`` for full lines, ``__i_NN`` for an inline comment placed right
before the key it annotates). :func:`to_mapping` and :func:`from_mapping`
convert between the two.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .constants import INLINE_PREFIX, LEGACY_COMMENT_PREFIX, LINE_PREFIX

_QUOTES = ("'", '"')


@dataclass(frozen=True)
class Variable:
    key: str
    value: str
    comment: Optional[str] = None


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class Blank:
    pass


Entry = Union[Variable, Comment, Blank]


class EnvFile:
    """Ordered entries of one ``.env`` file.

    Adding a :class:`Variable` whose key is already present updates the
    earlier entry's value in place, so a key keeps the position (and inline
    comment) of its first occurrence while the last value wins. An inline
    comment on the later occurrence is kept as a standalone comment line
    where that occurrence stood.
    """

    def __init__(self, entries: Iterable[Entry] = ()):
        self._entries: List[Entry] = []
        self._positions: Dict[str, int] = {}
        for entry in entries:
            self._add(entry)

    def _add(self, entry: Entry) -> None:
        if isinstance(entry, Variable):
            pos = self._positions.get(entry.key)
            if pos is not None:
                prev = self._entries[pos]
                self._entries[pos] = replace(entry, comment=prev.comment)  # type: ignore[union-attr]
                if entry.comment:
                    self._entries.append(Comment(entry.comment))
                return
            self._positions[entry.key] = len(self._entries)
        self._entries.append(entry)

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return tuple(self._entries)

    def variables(self) -> List[Variable]:
        return [e for e in self._entries if isinstance(e, Variable)]

    def keys(self) -> List[str]:
        return [v.key for v in self.variables()]

    def items(self) -> List[Tuple[str, str]]:
        return [(v.key, v.value) for v in self.variables()]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        pos = self._positions.get(key)
        if pos is None:
            return default
        return self._entries[pos].value  # type: ignore[union-attr]

    def __getitem__(self, key: str) -> str:
        pos = self._positions.get(key)
        if pos is None:
            raise KeyError(key)
        return self._entries[pos].value  # type: ignore[union-attr]

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EnvFile):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"EnvFile({self._entries!r})"


def _split_inline_comment(raw: str) -> Tuple[str, Optional[str]]:
    """Split ``raw`` at the first ``#`` that is not inside quotes."""
    quote: Optional[str] = None
    for i, ch in enumerate(raw):
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "#":
            return raw[:i].strip(), raw[i:].strip()
    return raw.strip(), None


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def parse_line(line: str) -> Optional[Entry]:
    """Parse a single source line; ``None`` when it carries nothing."""
    stripped = line.strip()
    if not stripped:
        return Blank()
    if stripped.startswith("#"):
        return Comment(stripped)
    eq = stripped.find("=")
    if eq <= 0:
        return None
    key = stripped[:eq].strip()
    if not key:
        return None
    raw, comment = _split_inline_comment(stripped[eq + 1:])
    return Variable(key, _unquote(raw), comment)


def loads(text: str) -> EnvFile:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    env = EnvFile()
    for line in lines:
        entry = parse_line(line)
        if entry is not None:
            env._add(entry)
    return env


def load(path: Union[str, Path]) -> EnvFile:
    return loads(Path(path).read_text(encoding="utf-8"))


def dumps(env: EnvFile) -> str:
    """Serialize ``env`` back to ``.env`` text.

    Values are quoted only where writing them bare would parse back
    differently (a ``#``, surrounding whitespace, wrapping quotes).
    """
    lines: List[str] = []
    for entry in env:
        if isinstance(entry, Variable):
            line = f"{entry.key}={_format_value(entry)}"
            if entry.comment:
                line = f"{line} {entry.comment}"
            lines.append(line)
        elif isinstance(entry, Comment):
            lines.append(entry.text)
        else:
            lines.append("")
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def _needs_quotes(var: Variable) -> bool:
    value = var.value
    if not value:
        return False
    if "#" in value or value != value.strip():
        return True
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return True
    # An unbalanced quote would swallow the trailing comment on re-read
    return bool(var.comment) and any(q in value for q in _QUOTES)


def _format_value(var: Variable) -> str:
    if not _needs_quotes(var):
        return var.value
    if '"' not in var.value:
        return f'"{var.value}"'
    if "'" not in var.value:
        return f"'{var.value}'"
    return var.value


def _seq_key(prefix: str, seq: int) -> str:
    return f"{prefix}{seq:02d}"


def is_synthetic_key(key: str) -> bool:
    return key.startswith((LINE_PREFIX, INLINE_PREFIX, LEGACY_COMMENT_PREFIX))


def to_mapping(env: EnvFile) -> Dict[str, str]:
    out: Dict[str, str] = {}
    line_seq = 0
    inline_seq = 0
    for entry in env:
        if isinstance(entry, Variable):
            if entry.comment:
                out[_seq_key(INLINE_PREFIX, inline_seq)] = entry.comment
                inline_seq += 1
            out[entry.key] = entry.value
        else:
            out[_seq_key(LINE_PREFIX, line_seq)] = entry.text if isinstance(entry, Comment) else ""
            line_seq += 1
    return out


def from_mapping(mapping: Mapping[str, str]) -> EnvFile:
    """Rebuild an :class:`EnvFile` from its mapping form.

    An ``__i_NN`` entry annotates the ordinary key that immediately follows
    it; when no ordinary key follows, it becomes a standalone comment line.
    """
    entries: List[Entry] = []
    pending: Optional[str] = None
    for key, value in mapping.items():
        if key.startswith(INLINE_PREFIX):
            if pending is not None:
                entries.append(Comment(pending))
            pending = value
            continue
        if key.startswith((LINE_PREFIX, LEGACY_COMMENT_PREFIX)):
            if pending is not None:
                entries.append(Comment(pending))
                pending = None
            entries.append(Comment(value) if value.strip() else Blank())
            continue
        entries.append(Variable(key, value, pending))
        pending = None
    if pending is not None:
        entries.append(Comment(pending))
    return EnvFile(entries)


__all__ = [
    "Blank",
    "Comment",
    "EnvFile",
    "Entry",
    "Variable",
    "dumps",
    "from_mapping",
    "is_synthetic_key",
    "load",
    "loads",
    "parse_line",
    "to_mapping",
]

from __future__ import annotations

import gzip
import zlib
from typing import Optional

from .errors import EnvelopeError

DEFAULT_LEVEL = 9


def compress(data: bytes, level: Optional[int] = None) -> bytes:
    # mtime=0 keeps the gzip header free of wall-clock time
    return gzip.compress(data, compresslevel=level if level is not None else DEFAULT_LEVEL, mtime=0)


def decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise EnvelopeError(f"gzip decompression failed: {e}") from e

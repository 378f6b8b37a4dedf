"""
SHA‑256 helpers for the layout envelope and for files written by the CLI.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Union


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256sum(fp: Union[str, Path], buf: int = 1 << 20) -> str:
    """Digest of the file at *fp*, read in *buf*-sized blocks."""
    h = hashlib.sha256()
    with Path(fp).open("rb") as f:
        for blk in iter(lambda: f.read(buf), b""):
            h.update(blk)
    return h.hexdigest()

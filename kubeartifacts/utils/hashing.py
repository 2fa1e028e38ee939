"""Stable digests and payload encoding for collector jobs."""

import base64
import bz2
import hashlib
import json
from typing import Any, Union


def compute_hash(obj: Any) -> str:
    """Return a short, deterministic, DNS-label-safe digest of obj."""
    payload = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:10]


def compress_and_encode(data: Union[str, bytes]) -> str:
    """bzip2-compress data and return it base64 encoded."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(bz2.compress(data)).decode("ascii")


def decode_and_decompress(encoded: str) -> bytes:
    """Inverse of compress_and_encode."""
    return bz2.decompress(base64.b64decode(encoded))

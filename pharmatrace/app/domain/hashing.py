"""Document digests and canonical serialization."""
from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping

DIGEST_SIZE = 32
DOCUMENT_ENCODING = "utf-8"


def hash_document(document: str) -> bytes:
    """Return the SHA-256 digest of the UTF-8 bytes of ``document``.

    The empty string is a valid document. Whether to accept it is up to the
    caller.
    """
    if not isinstance(document, str):
        raise TypeError(f"document must be str, got {type(document).__name__}")
    return hashlib.sha256(document.encode(DOCUMENT_ENCODING)).digest()


def digest_hex(digest: bytes) -> str:
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return digest.hex()


def canonical_bytes(data: Mapping[str, Any]) -> bytes:
    """Serialize data with deterministic ordering for hashing and signing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")

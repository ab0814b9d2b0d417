import hashlib
import json
from typing import Any


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def canonical_digest(payload: Any, *, domain: bytes = b"") -> bytes:
    """SHA-256 over `domain` followed by the UTF-8 canonical JSON of `payload`."""
    return hashlib.sha256(domain + canonical_json(payload).encode("utf-8")).digest()


def hash_canonical_payload(payload: Any) -> str:
    return f"sha256:{canonical_digest(payload).hex()}"

"""
Deterministic hashing utilities.

Content signatures decide whether a draft diverges from its persisted
rows, and input fingerprints decide whether a snapshot must be
recomputed. Both must be reproducible across processes.
"""

import hashlib
import json
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # 1.50 and 1.5 must hash identically
        normalized = obj.normalize()
        return format(normalized, "f")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (tuple, set, frozenset)):
        return list(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """
    Convert data to canonical JSON string.

    Keys are sorted, there is no whitespace, and Decimal, Enum, datetime
    and UUID values serialize consistently.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: Any) -> str:
    """Hex-encoded SHA-256 of the canonical JSON of ``payload``."""
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def content_signature(contents: Iterable[dict[str, Any]]) -> str:
    """
    Order-independent signature of row contents.

    Each row's content (without its id) is canonicalized, the lines are
    sorted, and the hash covers ``count|line1\\nline2...``. Reordering rows
    or re-fetching equivalent data yields the same signature.
    """
    lines = sorted(canonicalize_json(content) for content in contents)
    material = f"{len(lines)}|" + "\n".join(lines)
    return hashlib.sha256(material.encode("utf-8")).hexdigest()

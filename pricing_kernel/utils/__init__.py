"""Utility modules for the pricing kernel."""

from pricing_kernel.utils.hashing import (
    canonicalize_json,
    content_signature,
    hash_payload,
)

__all__ = [
    "canonicalize_json",
    "content_signature",
    "hash_payload",
]

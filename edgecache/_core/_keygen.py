from __future__ import annotations

import hashlib

__all__ = ("VERSION_PARAMETER", "build_cache_key", "hash_cache_key")

VERSION_PARAMETER = "edge_cache_ver"


def build_cache_key(url: str, generation: int) -> str:
    """
    Scope a request URL to a cache generation.

    The generation travels as one extra query parameter, so moving to the
    next generation leaves every stored entry behind without touching it.

    >>> build_cache_key("https://example.com/page", 3)
    'https://example.com/page?edge_cache_ver=3'
    >>> build_cache_key("https://example.com/page?p=2", 3)
    'https://example.com/page?p=2&edge_cache_ver=3'
    """
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{VERSION_PARAMETER}={generation}"


def hash_cache_key(cache_key: str) -> str:
    return hashlib.sha256(cache_key.encode("utf-8")).hexdigest()

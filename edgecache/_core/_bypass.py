from __future__ import annotations

from typing import Optional, Sequence

__all__ = ("should_bypass",)


def should_bypass(cookie_header: Optional[str], prefixes: Sequence[str]) -> bool:
    """
    Tell whether a request carries a cookie that marks it as personalized.

    Cookies are compared case-sensitively against every prefix, the first
    match wins.

    >>> should_bypass("wp-settings-1=abc; session=xyz", ["wp-"])
    True
    >>> should_bypass("session=xyz", ["wp-"])
    False
    """
    if not cookie_header or not prefixes:
        return False

    for cookie in cookie_header.split(";"):
        cookie = cookie.strip()
        if any(cookie.startswith(prefix) for prefix in prefixes):
            return True
    return False

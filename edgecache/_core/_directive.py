"""
The control header spoken between the cache and the origin.

The origin answers with a comma separated list of commands in the
``x-HTML-Edge-Cache`` response header::

    x-HTML-Edge-Cache: purgeall,cache,bypass-cookies=wp-|wordpress

and learns that the cache understands them from the request header the cache
always sends (see `CAPABILITIES`).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Tuple, Union

__all__ = (
    "ABSENT",
    "Absent",
    "CAPABILITIES",
    "ControlDirective",
    "DEFAULT_BYPASS_COOKIES",
    "decode",
    "effective_bypass_cookies",
    "encode",
)

logger = logging.getLogger("edgecache.core.directive")

CAPABILITIES = "supports=cache|purgeall|bypass-cookies"

DEFAULT_BYPASS_COOKIES: Tuple[str, ...] = ("wp-", "wordpress", "comment_", "woocommerce_")

PURGE_TOKEN = "purgeall"
CACHE_TOKEN = "cache"
BYPASS_COOKIES_TOKEN = "bypass-cookies"


class Absent(enum.Enum):
    """The origin sent no directive at all."""

    ABSENT = "absent"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent.ABSENT


@dataclass(frozen=True)
class ControlDirective:
    purge: bool = False
    """Invalidate every stored response by advancing the generation."""

    cache: bool = False
    """The response may be stored."""

    bypass_cookies: Tuple[str, ...] = ()
    """Cookie prefixes that mark a request as personalized. Replaces the default list."""


DirectiveOrAbsent = Union[ControlDirective, Literal[Absent.ABSENT]]


def decode(header_value: Optional[str]) -> DirectiveOrAbsent:
    """
    Parse the control header of an origin response.

    Unknown tokens are skipped so that newer origins keep working,
    and a malformed token never spoils the ones around it.

    >>> decode("purgeall, bypass-cookies=wp-| |session")
    ControlDirective(purge=True, cache=False, bypass_cookies=('wp-', 'session'))
    >>> decode(None)
    ABSENT
    """
    if not header_value:
        return ABSENT

    purge = False
    cache = False
    bypass_cookies: list[str] = []

    for token in header_value.split(","):
        token = token.strip()
        if token == PURGE_TOKEN:
            purge = True
        elif token == CACHE_TOKEN:
            cache = True
        else:
            name, separator, value = token.partition("=")
            if name.strip() == BYPASS_COOKIES_TOKEN and separator:
                bypass_cookies.extend(prefix.strip() for prefix in value.split("|") if prefix.strip())
            elif token:
                logger.debug("Ignoring unknown directive token: %r", token)

    return ControlDirective(purge=purge, cache=cache, bypass_cookies=tuple(bypass_cookies))


def encode(directive: ControlDirective) -> str:
    tokens = []
    if directive.purge:
        tokens.append(PURGE_TOKEN)
    if directive.cache:
        tokens.append(CACHE_TOKEN)
    if directive.bypass_cookies:
        tokens.append(f"{BYPASS_COOKIES_TOKEN}={'|'.join(directive.bypass_cookies)}")
    return ",".join(tokens)


def effective_bypass_cookies(directive: DirectiveOrAbsent, default: Sequence[str]) -> Tuple[str, ...]:
    """
    The prefixes to check a request against.

    A present directive always wins, so an origin can switch the bypass off
    for one response by sending a directive without `bypass-cookies`.
    """
    if directive is ABSENT:
        return tuple(default)
    return directive.bypass_cookies

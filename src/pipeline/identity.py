"""Stable identity for scraped listings.

The identity is the only key used to recognize "the same boat" across two
snapshots. It is built from the title and the display price, case-folded,
with everything except ASCII letters and digits removed, so surrounding
markup, punctuation and currency formatting do not affect it.
"""

import re
from typing import Optional

_STRIP = re.compile(r"[^a-z0-9]")
_STRIP_KEEP_HYPHEN = re.compile(r"[^a-z0-9-]")


def _component(value: Optional[str], pattern: re.Pattern) -> str:
    if not value:
        return ""
    return pattern.sub("", str(value).casefold())


def listing_identity(title: Optional[str], price: Optional[str], keep_hyphen: bool = False) -> str:
    """Compute the identity for a (title, price) pair.

    Never raises: a missing title or price contributes an empty component.
    Two different boats with the same title and price collapse to one
    identity, which is an accepted limitation.
    """
    pattern = _STRIP_KEEP_HYPHEN if keep_hyphen else _STRIP
    return _component(title, pattern) + _component(price, pattern)

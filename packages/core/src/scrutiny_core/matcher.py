"""Regular-expression matching of change text."""

from __future__ import annotations

import functools
import logging
import re
from typing import Iterable

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern | None:
    """Compile a pattern once; a malformed one is reported once and yields None."""
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.error("Ignoring invalid pattern %r: %s", pattern, e)
        return None


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern]:
    """Return the usable compiled patterns, dropping malformed ones."""
    compiled = (_compile(p) for p in patterns)
    return [c for c in compiled if c is not None]


def matches(text: str | None, patterns: Iterable[str]) -> bool:
    """Return True if any pattern occurs anywhere in text.

    Patterns are OR-ed and evaluation stops at the first hit. A malformed
    pattern never matches; it does not stop the others from being tried.
    """
    if not text:
        return False
    for pattern in patterns:
        compiled = _compile(pattern)
        if compiled is not None and compiled.search(text):
            return True
    return False

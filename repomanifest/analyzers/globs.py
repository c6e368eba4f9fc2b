"""Glob-to-regex translation for matching virtual path lists."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Pattern

_ANY_DIRS = "\x00"
_GLOBSTAR = "\x01"


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a glob into an anchored regular expression.

    ``**/`` matches zero or more whole directories, any other ``**`` matches
    across separators, ``*`` stays within one path segment and ``?`` matches a
    single non-separator character. Everything else is literal.
    """
    body = pattern.replace("**/", _ANY_DIRS).replace("**", _GLOBSTAR)
    parts = []
    for char in body:
        if char == _ANY_DIRS:
            parts.append("(?:.*/)?")
        elif char == _GLOBSTAR:
            parts.append(".*")
        elif char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$")


def match_glob(path: str, pattern: str) -> bool:
    return compile_glob(pattern).match(path) is not None


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(match_glob(path, pattern) for pattern in patterns)


__all__ = ["compile_glob", "match_glob", "matches_any"]

"""Path and ref glob matching.

Patterns are split on ``/`` and matched segment by segment:

- ``**`` matches zero or more complete segments;
- ``*`` matches any run of characters inside one segment;
- ``?`` matches exactly one character.

A pattern list may contain ``!``-prefixed negations.  A path is selected
by a list when it matches a positive pattern and no negation that comes
after that positive match.

Example
-------
>>> match_glob("**/*.go", "src/pkg/main.go")
True
>>> match_patterns(["**/*.go", "!**/*_test.go"], "src/foo_test.go")
False
"""
from __future__ import annotations

from fnmatch import fnmatchcase
from functools import lru_cache

BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"


def match_glob(pattern: str, path: str) -> bool:
    """Return True when ``path`` matches the glob ``pattern``.

    Backslashes in either argument are treated as ``/`` separators.
    """
    pattern_parts = tuple(pattern.replace("\\", "/").split("/"))
    path_parts = tuple(path.replace("\\", "/").split("/"))
    return _match_segments(pattern_parts, path_parts)


@lru_cache(maxsize=1024)
def _match_segments(pattern: tuple[str, ...], path: tuple[str, ...]) -> bool:
    if not pattern:
        return not path
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        # Zero segments first, then let ** swallow one more segment at a time.
        return any(_match_segments(rest, path[skip:]) for skip in range(len(path) + 1))
    if not path:
        return False
    return fnmatchcase(path[0], head) and _match_segments(rest, path[1:])


def match_patterns(patterns: list[str], path: str) -> bool:
    """Return True when ``path`` is selected by an ordered pattern list.

    Negations only veto a path that an earlier positive pattern selected.
    """
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if matched and match_glob(pattern[1:], path):
                return False
        elif match_glob(pattern, path):
            matched = True
    return matched


def match_any(patterns: list[str], path: str) -> bool:
    """Return True when any pattern matches; used for ``*-ignore`` lists."""
    return any(match_glob(pattern, path) for pattern in patterns)


def extract_branch(ref: str) -> str:
    """``refs/heads/main`` -> ``main``; any other ref -> ``""``."""
    if ref.startswith(BRANCH_PREFIX):
        return ref[len(BRANCH_PREFIX):]
    return ""


def extract_tag(ref: str) -> str:
    """``refs/tags/v1.0.0`` -> ``v1.0.0``; any other ref -> ``""``."""
    if ref.startswith(TAG_PREFIX):
        return ref[len(TAG_PREFIX):]
    return ""

"""Name matching for bulk expiration."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable

from rendercache.types import MatchMode


def parse_mode(mode: MatchMode | str) -> MatchMode:
    """Accept a MatchMode or its name in any case."""
    try:
        return MatchMode(str(mode).lower())
    except ValueError:
        choices = ", ".join(m.value for m in MatchMode)
        raise ValueError(f"Unknown match mode '{mode}' (expected one of: {choices})") from None


def match_names(
    pattern: str,
    names: Iterable[str],
    mode: MatchMode | str = MatchMode.STRICT,
) -> list[str]:
    """Select the item names that ``pattern`` targets.

    - strict: ``[pattern]`` as-is; ``names`` is not consulted, so the item
      need not be known yet.
    - glob:   shell wildcards, matched against the whole name.
    - regex:  ``re.search`` against each name; anchor the pattern yourself
      for a full match.

    The full list is built before the caller removes anything.
    """
    mode = parse_mode(mode)
    if mode is MatchMode.STRICT:
        return [pattern]

    if mode is MatchMode.GLOB:
        matcher = re.compile(fnmatch.translate(pattern)).match
    else:
        matcher = re.compile(pattern).search

    return [name for name in names if matcher(name)]

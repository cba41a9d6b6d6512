"""Kill-count extraction from game chat messages."""

from __future__ import annotations

import re
from typing import NamedTuple

_TAG_RE = re.compile(r"<[^>]*>")
_KILL_COUNT_RE = re.compile(
    r"Your (?P<boss>.+?) (?:kill|harvest|lap|completion|success) count is: (?P<count>\d[\d,]*)"
)


class KillCount(NamedTuple):
    boss: str
    count: int


def parse_kill_count(message: str) -> KillCount | None:
    """Return the boss and count from a kill-count message, or None.

    Colour tags (`<col=ff0000>`) are stripped before matching.
    """
    match = _KILL_COUNT_RE.search(_TAG_RE.sub("", message))
    if match is None:
        return None
    return KillCount(boss=match.group("boss"), count=int(match.group("count").replace(",", "")))

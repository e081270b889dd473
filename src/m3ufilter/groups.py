"""
Group statistics for a parsed playlist.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


def group_key(title: str) -> str:
    return (title or "").strip().casefold()


class GroupTally:
    """Case-insensitive group title -> entry count.

    The first spelling seen for a group is the one reported back.
    """

    def __init__(self):
        self._names: dict[str, str] = {}
        self._counts: dict[str, int] = {}

    def add(self, title: str, count: int = 1) -> None:
        key = group_key(title)
        if key not in self._names:
            self._names[key] = title
            self._counts[key] = 0
        self._counts[key] += count

    def __getitem__(self, title: str) -> int:
        return self._counts[group_key(title)]

    def get(self, title: str, default: int = 0) -> int:
        return self._counts.get(group_key(title), default)

    def __contains__(self, title) -> bool:
        return isinstance(title, str) and group_key(title) in self._counts

    def __iter__(self) -> Iterator[str]:
        return iter(self._names.values())

    def __len__(self) -> int:
        return len(self._names)

    def items(self) -> list[tuple[str, int]]:
        return [(self._names[key], self._counts[key]) for key in self._names]

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def most_common(self) -> list[tuple[str, int]]:
        # sorted() is stable, so equal counts keep first-seen order
        return sorted(self.items(), key=lambda item: item[1], reverse=True)

    def as_dict(self) -> dict[str, int]:
        return dict(self.items())

    def __repr__(self) -> str:
        return f"GroupTally({self.as_dict()!r})"


def tally_groups(entries: Iterable) -> GroupTally:
    tally = GroupTally()
    for entry in entries:
        tally.add(entry.group_title)
    return tally


def analyze(text, source_name=None, source_url=None):
    """Count channels per group without building a new playlist.

    ``source_name`` wins when it is non-blank; otherwise a name is derived
    from ``source_url``.
    """
    from m3ufilter.models import AnalysisResult
    from m3ufilter.naming import derive_playlist_name, guess_expiry
    from m3ufilter.parser import parse_playlist

    result = parse_playlist(text)
    if source_name and source_name.strip():
        name = source_name.strip()
    else:
        name = derive_playlist_name(source_url)

    logger.info(
        "Analyzed playlist %r: %d channels, %d groups",
        name,
        result.total_entries,
        len(result.groups),
    )
    return AnalysisResult(
        groups=result.groups.most_common(),
        total_entries=result.total_entries,
        derived_name=name,
        expires_at=guess_expiry(source_url),
    )

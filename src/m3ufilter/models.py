from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from m3ufilter.groups import GroupTally

UNGROUPED = "Ungrouped"


@dataclass(frozen=True)
class Entry:
    directive_line: str
    stream_url: str
    display_name: str
    attributes: Mapping[str, str]
    group_title: str
    sort_order: int
    line_number: int | None = None

    def __post_init__(self):
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def _optional(self, key: str) -> str | None:
        value = (self.attributes.get(key) or "").strip()
        return value or None

    @property
    def tvg_id(self) -> str | None:
        return self._optional("tvg-id")

    @property
    def tvg_name(self) -> str | None:
        return self._optional("tvg-name")

    @property
    def tvg_logo(self) -> str | None:
        return self._optional("tvg-logo")


@dataclass(frozen=True)
class ParseResult:
    entries: tuple[Entry, ...]
    groups: GroupTally

    @property
    def total_entries(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class AnalysisResult:
    groups: list[tuple[str, int]]
    total_entries: int
    derived_name: str
    expires_at: datetime | None = None

    @property
    def group_count(self) -> int:
        return len(self.groups)


@dataclass(frozen=True)
class FilterResult:
    text: str
    total_entries: int
    kept_entries: int

    @property
    def dropped_entries(self) -> int:
        return self.total_entries - self.kept_entries


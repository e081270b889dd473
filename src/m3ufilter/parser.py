"""
Strict, streaming M3U parser.

The parser walks the playlist line by line, pairing every #EXTINF directive
with the line that follows it. Structural problems (no header, a URL with no
directive, a directive with no URL) abort the parse with a PlaylistParseError.
"""

from __future__ import annotations

import enum
import io
import logging
import re
from typing import Callable, Iterator

from m3ufilter import config
from m3ufilter.errors import DanglingExtinfError, MissingHeaderError, OrphanUrlError
from m3ufilter.groups import tally_groups
from m3ufilter.models import UNGROUPED, Entry, ParseResult

logger = logging.getLogger(__name__)

HEADER_TAG = "#EXTM3U"
EXTINF_TAG = "#EXTINF"

_ATTR_RE = re.compile(r"([\w][\w-]*)=\"([^\"]*)\"")

Checkpoint = Callable[[int, int], None]


class ParserState(enum.Enum):
    AWAITING_HEADER = "awaiting_header"
    READY = "ready"
    AWAITING_URL = "awaiting_url"
    DONE = "done"


def _physical_lines(text):
    if not text:
        return
    # newline=None turns \r\n and bare \r into \n
    for lineno, raw in enumerate(io.StringIO(text, newline=None), start=1):
        if lineno == 1:
            raw = raw.lstrip("\ufeff")
        yield lineno, raw.strip()


def _numbered_lines(text):
    for lineno, line in _physical_lines(text):
        if line:
            yield lineno, line


def normalize_lines(text: str | None) -> Iterator[str]:
    """Yield the trimmed, non-empty lines of ``text``."""
    for _, line in _numbered_lines(text):
        yield line


def count_lines(text: str | None) -> int:
    """Number of physical lines in ``text``, blank ones included."""
    if not text:
        return 0
    breaks = text.count("\n") + text.count("\r") - text.count("\r\n")
    if not text.endswith(("\n", "\r")):
        breaks += 1
    return breaks


def parse_attributes(segment: str | None) -> dict[str, str]:
    attributes = {}
    for key, value in _ATTR_RE.findall(segment or ""):
        attributes[key.lower()] = value
    return attributes


def split_directive(line: str) -> tuple[str, str | None]:
    """Split an #EXTINF line into its metadata segment and display-name trailer.

    The metadata segment runs from the first colon to the first comma, even
    one inside a quoted value. The trailer is everything after that comma, or
    None when the line has no comma at all.
    """
    colon = line.find(":")
    metadata = line[colon + 1:] if colon >= 0 else line[len(EXTINF_TAG):]
    comma = metadata.find(",")
    if comma < 0:
        return metadata, None
    return metadata[:comma], metadata[comma + 1:]


def resolve_display_name(attributes, trailer, fallback):
    for candidate in (trailer, attributes.get("tvg-name"), attributes.get("tvg-id")):
        if candidate and candidate.strip():
            return candidate.strip()
    return fallback.strip()


def resolve_group_title(attributes):
    group = (attributes.get("group-title") or "").strip()
    return group or UNGROUPED


def _is_tag(line, tag):
    return line[: len(tag)].upper() == tag


def iter_entries(
    text: str | None,
    checkpoint: Checkpoint | None = None,
    interval: int | None = None,
) -> Iterator[Entry]:
    """Yield entries in source order, validating structure as it goes.

    ``checkpoint(processed_lines, total_lines)`` is called every ``interval``
    physical lines and once more at the end of input. It may raise to abort
    the scan.
    """
    interval = interval or config.PROGRESS_INTERVAL
    total_lines = count_lines(text) if checkpoint else 0
    next_checkpoint = interval
    reported = 0

    state = ParserState.AWAITING_HEADER
    pending = None
    sort_order = 0

    # blank lines still count towards the checkpoint cadence
    for lineno, line in _physical_lines(text):
        if checkpoint and lineno >= next_checkpoint:
            checkpoint(lineno, total_lines)
            reported = lineno
            next_checkpoint = (lineno // interval + 1) * interval
        if not line:
            continue

        if state is ParserState.AWAITING_HEADER:
            if not _is_tag(line, HEADER_TAG):
                logger.warning("Playlist is missing the #EXTM3U header (line %d)", lineno)
                raise MissingHeaderError(lineno)
            state = ParserState.READY
            continue

        if state is ParserState.AWAITING_URL and _is_tag(line, EXTINF_TAG):
            logger.warning("EXTINF at line %d has no stream URL", pending[1])
            raise DanglingExtinfError(pending[1])

        if state is ParserState.AWAITING_URL and not line.startswith("#"):
            directive, directive_lineno, attributes, trailer = pending
            yield Entry(
                directive_line=directive,
                stream_url=line,
                display_name=resolve_display_name(attributes, trailer, line),
                attributes=attributes,
                group_title=resolve_group_title(attributes),
                sort_order=sort_order,
                line_number=directive_lineno,
            )
            sort_order += 1
            pending = None
            state = ParserState.READY
            continue

        if _is_tag(line, EXTINF_TAG):
            metadata, trailer = split_directive(line)
            pending = (line, lineno, parse_attributes(metadata), trailer)
            state = ParserState.AWAITING_URL
        elif line.startswith("#"):
            # #EXTGRP, #EXTVLCOPT, comments
            continue
        else:
            logger.warning("Encountered URL without EXTINF at line %d", lineno)
            raise OrphanUrlError(lineno)

    if state is ParserState.AWAITING_URL:
        logger.warning("Playlist ended before URL for final EXTINF entry")
        raise DanglingExtinfError(pending[1])
    if state is ParserState.AWAITING_HEADER:
        logger.warning("Playlist did not contain an #EXTM3U header")
        raise MissingHeaderError()
    state = ParserState.DONE

    if checkpoint and reported != total_lines:
        checkpoint(total_lines, total_lines)


def parse_playlist(text: str | None) -> ParseResult:
    logger.debug("Starting playlist parse (%d characters)", len(text or ""))
    entries = tuple(iter_entries(text))
    result = ParseResult(entries=entries, groups=tally_groups(entries))
    logger.info(
        "Parsed %d channels in %d groups", result.total_entries, len(result.groups)
    )
    return result

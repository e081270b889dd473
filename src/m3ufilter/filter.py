#!/usr/bin/env python3
"""
M3U Playlist Filter - Drop whole channel groups from a playlist.
"""

import logging
import os
import re

from m3ufilter import config
from m3ufilter.errors import EmptyResultError, FetchError, PlaylistParseError
from m3ufilter.fetch import load_playlist_text
from m3ufilter.groups import analyze, group_key
from m3ufilter.models import FilterResult
from m3ufilter.parser import HEADER_TAG, iter_entries

logger = logging.getLogger(__name__)

_GROUP_ATTR_RE = re.compile(r'group-title="', re.IGNORECASE)


def ensure_group_title(directive_line, group_title):
    if _GROUP_ATTR_RE.search(directive_line):
        return directive_line
    return f'{directive_line} group-title="{group_title}"'


def generate_filtered(text, excluded_groups=(), checkpoint=None):
    """Rebuild the playlist without the entries of ``excluded_groups``.

    Entries are streamed straight from the parser into the output, so a
    structural error anywhere in ``text`` raises before anything is returned.
    """
    excluded = {group_key(g) for g in excluded_groups or () if g and g.strip()}
    lines = [HEADER_TAG]
    total = 0
    kept = 0

    for entry in iter_entries(text, checkpoint=checkpoint):
        total += 1
        if group_key(entry.group_title) in excluded:
            continue
        kept += 1
        lines.append(ensure_group_title(entry.directive_line, entry.group_title))
        lines.append(entry.stream_url)

    logger.info(
        "Filtered playlist: kept %d of %d channels (%d groups excluded)",
        kept,
        total,
        len(excluded),
    )
    return FilterResult(text="\n".join(lines).rstrip(), total_entries=total, kept_entries=kept)


def write_filtered_m3u(filepath, result):
    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    with open(filepath, "w", encoding="utf-8", newline="\n") as f:
        f.write(result.text)
        f.write("\n")
    return filepath


def get_playlist_source():
    if config.PLAYLIST_SOURCE:
        return config.PLAYLIST_SOURCE
    return input("Enter M3U URL or file path: ").strip()


def get_excluded_groups():
    if config.FILTER_EXCLUDED_GROUPS:
        return list(config.FILTER_EXCLUDED_GROUPS)
    user_input = input(
        "Enter groups to exclude (comma-separated, e.g., Adult, Radio): "
    ).strip()
    return [g.strip() for g in user_input.split(",") if g.strip()]


def get_output_path():
    return os.path.join(config.OUTPUT_DIR, config.FILTER_OUTPUT_FILENAME)


def print_groups(analysis):
    print(f"Playlist: {analysis.derived_name}")
    print(f"Loaded {analysis.total_entries} channels in {analysis.group_count} groups.\n")
    width = max((len(name) for name, _ in analysis.groups), default=0)
    for name, count in analysis.groups:
        print(f"  {name.ljust(width)}  {count}")
    if analysis.expires_at:
        print(f"\nExpires: {analysis.expires_at:%Y-%m-%d %H:%M} UTC")
    print()


def main():
    logging.basicConfig(
        filename=config.LOG_FILE,
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    print("=== M3U Group Filter ===\n")

    source = get_playlist_source()
    if not source:
        print("No playlist source provided.")
        return 1

    print(f"Loading playlist from: {source}")
    try:
        text = load_playlist_text(source)
        analysis = analyze(text, source_url=source)
        if analysis.total_entries == 0:
            raise EmptyResultError()
    except FetchError as e:
        logger.error(f"Error loading playlist: {e}")
        print(f"Failed to load playlist: {e}")
        return 1
    except PlaylistParseError as e:
        logger.error(f"Invalid playlist: {e}")
        print(f"Invalid playlist: {e}")
        return 1
    except EmptyResultError as e:
        print(f"{e}. Exiting.")
        return 1

    print_groups(analysis)

    excluded = get_excluded_groups()
    if excluded:
        print(f"Excluding groups: {', '.join(excluded)}\n")
    else:
        print("No groups excluded; writing every channel.\n")

    result = generate_filtered(text, excluded)
    output_path = write_filtered_m3u(get_output_path(), result)
    print(f"Kept {result.kept_entries} of {result.total_entries} channels.")
    print(f"\nFiltered playlist saved to: {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

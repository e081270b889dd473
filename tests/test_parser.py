import pytest

from m3ufilter.errors import (
    DanglingExtinfError,
    MissingHeaderError,
    OrphanUrlError,
    PlaylistParseError,
)
from m3ufilter.models import UNGROUPED
from m3ufilter.parser import (
    count_lines,
    iter_entries,
    normalize_lines,
    parse_attributes,
    parse_playlist,
    split_directive,
)


class TestNormalizeLines:
    def test_mixed_line_endings(self):
        text = "#EXTM3U\r\nfirst\rsecond\nthird"
        assert list(normalize_lines(text)) == ["#EXTM3U", "first", "second", "third"]

    def test_blank_lines_and_whitespace_dropped(self):
        text = "  #EXTM3U  \n\n   \n\t a \t\n"
        assert list(normalize_lines(text)) == ["#EXTM3U", "a"]

    def test_empty_input(self):
        assert list(normalize_lines("")) == []
        assert list(normalize_lines(None)) == []

    def test_byte_order_mark_removed(self):
        assert list(normalize_lines("\ufeff#EXTM3U\nurl")) == ["#EXTM3U", "url"]

    def test_restartable(self):
        text = "a\nb"
        assert list(normalize_lines(text)) == list(normalize_lines(text))


def test_count_lines():
    assert count_lines("") == 0
    assert count_lines("a") == 1
    assert count_lines("a\n") == 1
    assert count_lines("a\r\nb\rc\n\nd") == 5


class TestAttributes:
    def test_basic_pairs(self):
        attrs = parse_attributes('-1 tvg-id="abc" tvg-name="A B" group-title="News"')
        assert attrs == {"tvg-id": "abc", "tvg-name": "A B", "group-title": "News"}

    def test_keys_are_case_insensitive_and_last_wins(self):
        attrs = parse_attributes('Group-Title="First" group-title="Second"')
        assert attrs == {"group-title": "Second"}

    def test_empty_value_kept(self):
        assert parse_attributes('group-title=""') == {"group-title": ""}

    def test_unterminated_quote_skipped(self):
        attrs = parse_attributes('tvg-id="ok" tvg-name="broken')
        assert attrs == {"tvg-id": "ok"}

    def test_no_attributes(self):
        assert parse_attributes("-1") == {}
        assert parse_attributes(None) == {}


class TestSplitDirective:
    def test_metadata_and_trailer(self):
        assert split_directive('#EXTINF:-1 group-title="News",CNN') == (
            '-1 group-title="News"',
            "CNN",
        )

    def test_no_comma(self):
        assert split_directive('#EXTINF:-1 tvg-id="x"') == ('-1 tvg-id="x"', None)

    def test_comma_inside_quoted_value_ends_metadata(self):
        metadata, trailer = split_directive('#EXTINF:-1 tvg-name="Foo, Bar" group-title="A",Name')
        assert metadata == '-1 tvg-name="Foo'
        assert trailer == ' Bar" group-title="A",Name'

    def test_trailer_keeps_later_commas(self):
        assert split_directive("#EXTINF:-1,Hello, World")[1] == "Hello, World"

    def test_unbalanced_quotes_cut_at_first_comma(self):
        assert split_directive('#EXTINF:-1 tvg-name="oops,Name') == ('-1 tvg-name="oops', "Name")

    def test_missing_colon(self):
        assert split_directive("#EXTINF -1,Name") == (" -1", "Name")


class TestParsePlaylist:
    def test_simple_scenario(self, simple_playlist):
        result = parse_playlist(simple_playlist)

        assert result.total_entries == 2
        first, second = result.entries
        assert first.group_title == "News"
        assert first.display_name == "A"
        assert first.stream_url == "http://x/1"
        assert second.group_title == UNGROUPED
        assert second.display_name == "B"
        assert second.directive_line == "#EXTINF:-1,B"
        assert result.groups.as_dict() == {"News": 1, "Ungrouped": 1}

    def test_sort_order_is_contiguous(self, mixed_playlist):
        result = parse_playlist(mixed_playlist)
        assert [e.sort_order for e in result.entries] == list(range(result.total_entries))

    def test_mixed_playlist(self, mixed_playlist):
        entries = parse_playlist(mixed_playlist).entries

        assert [e.stream_url for e in entries] == [
            "http://stream.example/bbc1.m3u8",
            "http://stream.example/cnn.m3u8",
            "http://stream.example/sky.m3u8",
            "http://stream.example/aj.m3u8",
            "http://stream.example/rp.mp3",
        ]
        bbc = entries[0]
        assert bbc.display_name == "BBC One HD"
        assert bbc.tvg_id == "bbc1"
        assert bbc.tvg_name == "BBC One"
        assert bbc.tvg_logo == "http://logo/bbc1.png"
        assert bbc.line_number == 3
        # blank trailer falls back to tvg-name
        assert entries[3].display_name == "Al Jazeera"
        assert entries[3].group_title == "NEWS"
        assert entries[4].group_title == UNGROUPED
        assert entries[4].tvg_id is None

    def test_display_name_fallbacks(self):
        text = "\n".join(
            [
                "#EXTM3U",
                '#EXTINF:-1 tvg-id="only-id"',
                "http://x/1",
                "#EXTINF:-1,   ",
                "http://x/2",
            ]
        )
        first, second = parse_playlist(text).entries
        assert first.display_name == "only-id"
        assert second.display_name == "http://x/2"

    def test_blank_group_title_is_ungrouped(self):
        text = '#EXTM3U\n#EXTINF:-1 group-title="   ",A\nhttp://x/1'
        assert parse_playlist(text).entries[0].group_title == UNGROUPED

    def test_group_title_is_trimmed(self):
        text = '#EXTM3U\n#EXTINF:-1 group-title=" News ",A\nhttp://x/1'
        assert parse_playlist(text).entries[0].group_title == "News"

    def test_quoted_comma_hides_later_attributes(self):
        text = '#EXTM3U\n#EXTINF:-1 tvg-name="Smith, John" group-title="News",X\nhttp://x/1'
        entry = parse_playlist(text).entries[0]

        assert entry.group_title == UNGROUPED
        assert "tvg-name" not in entry.attributes
        assert entry.display_name == 'John" group-title="News",X'

    def test_case_insensitive_tags(self):
        text = "#extm3u\n#extinf:-1,A\nhttp://x/1"
        assert parse_playlist(text).total_entries == 1

    def test_header_only_is_valid_and_empty(self):
        result = parse_playlist("#EXTM3U\n\n")
        assert result.total_entries == 0
        assert len(result.groups) == 0

    def test_entries_are_immutable(self, simple_playlist):
        entry = parse_playlist(simple_playlist).entries[0]
        with pytest.raises(AttributeError):
            entry.group_title = "Other"
        with pytest.raises(TypeError):
            entry.attributes["group-title"] = "Other"


class TestStructuralErrors:
    def test_missing_header(self):
        with pytest.raises(MissingHeaderError) as exc:
            parse_playlist("#EXTINF:-1,A\nhttp://x/1")
        assert exc.value.kind == "missing_header"
        assert exc.value.line == 1

    def test_empty_input_is_missing_header(self):
        with pytest.raises(MissingHeaderError):
            parse_playlist("")
        with pytest.raises(MissingHeaderError):
            parse_playlist("  \n\n ")

    def test_dangling_extinf(self):
        with pytest.raises(DanglingExtinfError) as exc:
            parse_playlist("#EXTM3U\n#EXTINF:-1,Orphan")
        assert exc.value.kind == "dangling_extinf"
        assert exc.value.line == 2

    def test_dangling_extinf_followed_by_directive_only(self):
        with pytest.raises(DanglingExtinfError):
            parse_playlist("#EXTM3U\n#EXTINF:-1,A\n#EXTVLCOPT:foo=bar\n")

    def test_extinf_followed_by_extinf(self):
        with pytest.raises(DanglingExtinfError) as exc:
            parse_playlist("#EXTM3U\n#EXTINF:-1,A\n#EXTINF:-1,B\nhttp://x/2")
        assert exc.value.line == 2

    def test_orphan_url(self):
        with pytest.raises(OrphanUrlError) as exc:
            parse_playlist("#EXTM3U\nhttp://x/1")
        assert exc.value.kind == "orphan_url"
        assert exc.value.line == 2

    def test_orphan_url_line_counts_blank_lines(self):
        text = "#EXTM3U\n#EXTINF:-1,A\nhttp://x/1\n\n\nhttp://x/2"
        with pytest.raises(OrphanUrlError) as exc:
            parse_playlist(text)
        assert exc.value.line == 6

    def test_all_structural_errors_share_a_base(self):
        for text in ("nope", "#EXTM3U\nurl", "#EXTM3U\n#EXTINF:-1,A"):
            with pytest.raises(PlaylistParseError):
                parse_playlist(text)


class TestCheckpoints:
    def test_checkpoint_cadence(self, large_playlist):
        calls = []
        entries = list(iter_entries(large_playlist, checkpoint=lambda p, t: calls.append((p, t))))

        assert len(entries) == 12_000
        assert calls[0] == (2000, 24_001)
        assert [p for p, _ in calls[:-1]] == list(range(2000, 24_001, 2000))
        assert calls[-1] == (24_001, 24_001)

    def test_custom_interval(self):
        text = "#EXTM3U\n" + "\n".join(f"#EXTINF:-1,C{i}\nhttp://x/{i}" for i in range(10))
        calls = []
        list(iter_entries(text, checkpoint=lambda p, t: calls.append(p), interval=5))
        assert calls == [5, 10, 15, 20, 21]

    def test_blank_lines_count_towards_cadence(self):
        text = "#EXTM3U\n" + "\n" * 30 + "#EXTINF:-1,A\nhttp://x/1"
        calls = []
        entries = list(iter_entries(text, checkpoint=lambda p, t: calls.append((p, t)), interval=10))

        assert len(entries) == 1
        assert calls == [(10, 33), (20, 33), (30, 33), (33, 33)]

    def test_blank_run_can_be_aborted(self):
        class Stop(Exception):
            pass

        seen = []

        def checkpoint(processed, total):
            seen.append(processed)
            raise Stop()

        text = "#EXTM3U\n" + "\n" * 5000 + "http://x/orphan"
        with pytest.raises(Stop):
            list(iter_entries(text, checkpoint=checkpoint, interval=100))
        assert seen == [100]

    def test_checkpoint_can_abort(self, large_playlist):
        class Stop(Exception):
            pass

        def checkpoint(processed, total):
            raise Stop()

        seen = []
        with pytest.raises(Stop):
            for entry in iter_entries(large_playlist, checkpoint=checkpoint):
                seen.append(entry)
        # stopped at the first checkpoint (line 2000), long before the end
        assert len(seen) < 1000

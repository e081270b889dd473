from datetime import datetime, timezone

import pytest

from m3ufilter.naming import derive_playlist_name, guess_expiry


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://example.com/lists/sports.m3u", "sports.m3u"),
        ("http://example.com/lists/sports.m3u?user=a&pass=b", "sports.m3u"),
        ("https://example.com/lists/", "lists"),
        ("https://example.com/my%20list.m3u8", "my list.m3u8"),
        ("https://example.com/", "example.com"),
        ("https://example.com:8080", "example.com"),
        (None, "playlist"),
        ("", "playlist"),
        ("   ", "playlist"),
        ("not a url", "playlist"),
        ("/local/path.m3u", "playlist"),
        ("http://[::1", "playlist"),
    ],
)
def test_derive_playlist_name(url, expected):
    assert derive_playlist_name(url) == expected


def test_expiry_from_epoch_seconds():
    assert guess_expiry("http://p.example/get.php?exp=1767225600") == datetime(
        2026, 1, 1, tzinfo=timezone.utc
    )


def test_expiry_from_epoch_milliseconds():
    assert guess_expiry("http://p.example/get.php?expires=1767225600000") == datetime(
        2026, 1, 1, tzinfo=timezone.utc
    )


def test_expiry_from_date_string():
    assert guess_expiry("http://p.example/list.m3u?valid_to=2026-03-15") == datetime(
        2026, 3, 15, tzinfo=timezone.utc
    )


def test_expiry_key_is_case_insensitive():
    assert guess_expiry("http://p.example/list.m3u?Until=2026-03-15T10:00:00Z") == datetime(
        2026, 3, 15, 10, tzinfo=timezone.utc
    )


@pytest.mark.parametrize(
    "url",
    [
        None,
        "",
        "http://p.example/list.m3u",
        "http://p.example/list.m3u?exp=",
        "http://p.example/list.m3u?exp=soon-ish",
        "http://p.example/list.m3u?exp=99999999999999999999",
    ],
)
def test_expiry_unknown(url):
    assert guess_expiry(url) is None

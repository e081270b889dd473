"""Shared playlist fixtures."""
import pytest

from m3ufilter.utils.benchmark_workers import synthetic_playlist

SIMPLE_PLAYLIST = '#EXTM3U\n#EXTINF:-1 group-title="News",A\nhttp://x/1\n#EXTINF:-1,B\nhttp://x/2'

MIXED_PLAYLIST = "\r\n".join(
    [
        '#EXTM3U x-tvg-url="http://epg.example/guide.xml"',
        "",
        '#EXTINF:-1 tvg-id="bbc1" tvg-name="BBC One" tvg-logo="http://logo/bbc1.png" group-title="UK",BBC One HD',
        "http://stream.example/bbc1.m3u8",
        '#EXTINF:-1 tvg-id="cnn" group-title="news",CNN',
        "#EXTVLCOPT:http-user-agent=VLC",
        "http://stream.example/cnn.m3u8",
        "#EXTGRP:ignored",
        '#EXTINF:-1 tvg-id="sky" group-title="Sports",Sky Sports',
        "http://stream.example/sky.m3u8",
        '#EXTINF:-1 tvg-name="Al Jazeera" group-title="NEWS",',
        "http://stream.example/aj.m3u8",
        "#EXTINF:-1,Radio Paradise",
        "http://stream.example/rp.mp3",
        "",
    ]
)


@pytest.fixture
def simple_playlist():
    return SIMPLE_PLAYLIST


@pytest.fixture
def mixed_playlist():
    return MIXED_PLAYLIST


@pytest.fixture
def large_playlist():
    # 12,000 entries -> 24,001 lines
    return synthetic_playlist(12_000)


@pytest.fixture
def small_interval(monkeypatch):
    from m3ufilter import config

    monkeypatch.setattr(config, "PROGRESS_INTERVAL", 10)
    return 10

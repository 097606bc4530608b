import subprocess

import pytest

from tidal_cli.desktop.nowplaying import (
    clean_title,
    format_time,
    get_now_playing,
    parse_now_playing,
    playback_state,
)
from tidal_cli.errors import NotFoundError

RAW = """{
    kMRMediaRemoteNowPlayingInfoAlbum = "Kind of Blue";
    kMRMediaRemoteNowPlayingInfoArtist = "Miles Davis";
    kMRMediaRemoteNowPlayingInfoDuration = 562;
    kMRMediaRemoteNowPlayingInfoElapsedTime = "65.5";
    kMRMediaRemoteNowPlayingInfoPlaybackRate = 1;
    kMRMediaRemoteNowPlayingInfoTitle = "So What - TIDAL";
}"""


def test_parse_now_playing():
    info = parse_now_playing(RAW)
    assert info.title == "So What"
    assert info.artist == "Miles Davis"
    assert info.album == "Kind of Blue"
    assert info.is_playing is True
    assert info.duration == 562
    assert info.elapsed == 65.5
    assert playback_state(info) == "playing"


def test_paused_and_stopped_states():
    paused = parse_now_playing(RAW.replace("PlaybackRate = 1", "PlaybackRate = 0"))
    assert playback_state(paused) == "paused"
    assert playback_state(parse_now_playing("{}")) == "stopped"


def test_clean_title_and_format_time():
    assert clean_title("Blue in Green - TIDAL") == "Blue in Green"
    assert clean_title("Freddie Freeloader") == "Freddie Freeloader"
    assert format_time(65.9) == "1:05"
    assert format_time(0) == "0:00"


@pytest.mark.asyncio
async def test_get_now_playing_requires_helper(monkeypatch):
    async def missing(args, timeout=3.0):
        return subprocess.CompletedProcess(args, 127, "", "not found")

    monkeypatch.setattr("tidal_cli.desktop.nowplaying.run_command", missing)
    with pytest.raises(NotFoundError, match="nowplaying-cli"):
        await get_now_playing()


@pytest.mark.asyncio
async def test_get_now_playing(monkeypatch):
    async def helper(args, timeout=3.0):
        return subprocess.CompletedProcess(args, 0, RAW, "")

    monkeypatch.setattr("tidal_cli.desktop.nowplaying.run_command", helper)
    assert (await get_now_playing()).title == "So What"

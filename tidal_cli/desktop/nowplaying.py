from __future__ import annotations

import re
from dataclasses import dataclass

from tidal_cli.desktop.shell import run_command
from tidal_cli.errors import NotFoundError

NOWPLAYING_COMMAND = ["nowplaying-cli", "get-raw"]
NOWPLAYING_TIMEOUT = 3.0
INSTALL_HINT = "Failed to get now playing info. Is nowplaying-cli installed? (brew install nowplaying-cli)"

_KEY_PREFIX = "kMRMediaRemoteNowPlayingInfo"
_TIDAL_SUFFIX = re.compile(r"\s*-\s*TIDAL$", re.IGNORECASE)


@dataclass(frozen=True)
class NowPlaying:
    title: str
    artist: str
    album: str
    is_playing: bool
    duration: float
    elapsed: float


def _field(raw: str, name: str) -> str:
    match = re.search(rf"{_KEY_PREFIX}{name}\s*=\s*\"?([^\";\n}}]+)\"?", raw)
    return match.group(1).strip() if match else ""


def _number(raw: str, name: str) -> float:
    try:
        return float(_field(raw, name))
    except ValueError:
        return 0.0


def clean_title(title: str) -> str:
    return _TIDAL_SUFFIX.sub("", title).strip()


def parse_now_playing(raw: str) -> NowPlaying:
    return NowPlaying(
        title=clean_title(_field(raw, "Title")),
        artist=_field(raw, "Artist"),
        album=_field(raw, "Album"),
        is_playing=_number(raw, "PlaybackRate") > 0,
        duration=_number(raw, "Duration"),
        elapsed=_number(raw, "ElapsedTime"),
    )


def playback_state(info: NowPlaying) -> str:
    """``"playing"``, ``"paused"`` or ``"stopped"`` (nothing loaded)."""
    if not info.title:
        return "stopped"
    return "playing" if info.is_playing else "paused"


async def read_now_playing_raw() -> str:
    result = await run_command(NOWPLAYING_COMMAND, timeout=NOWPLAYING_TIMEOUT)
    if result.returncode != 0:
        raise NotFoundError(INSTALL_HINT)
    return result.stdout


async def get_now_playing() -> NowPlaying:
    return parse_now_playing(await read_now_playing_raw())


def format_time(seconds: float) -> str:
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}:{rest:02d}"

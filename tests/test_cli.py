import json
from contextlib import asynccontextmanager

import pytest
from typer.testing import CliRunner

from tidal_cli import cli
from tidal_cli.desktop.nowplaying import NowPlaying
from tidal_cli.desktop.state import ReadinessState
from tidal_cli.errors import NotFoundError, RateLimitedError
from tidal_cli.models import Album, Artist, Lyrics, Mix, Playlist, Track

runner = CliRunner()

TRACKS = [
    Track(id=1, title="So What", artist="Miles Davis", album="Kind of Blue", duration=562),
    Track(id=2, title="Blue in Green", artist="Miles Davis", album="Kind of Blue", duration=337),
]


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch):
    calls = []
    monkeypatch.setattr("tidal_cli.cli.setup_logging", lambda **kwargs: calls.append(kwargs))
    return calls


@pytest.fixture(autouse=True)
def fake_session(monkeypatch, tmp_path):
    monkeypatch.setenv("TIDAL_CLI_CONFIG", str(tmp_path))
    sessions = []

    @asynccontextmanager
    async def open_session(config):
        session = object()
        sessions.append(session)
        yield session

    monkeypatch.setattr("tidal_cli.cli.open_session", open_session)
    return sessions


def _returning(value, calls=None):
    async def call(*args, **kwargs):
        if calls is not None:
            calls.append(args[1:])
        return value

    return call


def test_library_tracks_json(monkeypatch):
    calls = []
    monkeypatch.setattr("tidal_cli.cli.get_favorite_tracks", _returning(TRACKS, calls))

    result = runner.invoke(cli.app, ["library", "tracks", "--limit", "2"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["count"] == 2
    assert payload["tracks"][0]["title"] == "So What"
    assert calls == [(2,)]


def test_library_tracks_plain(monkeypatch):
    monkeypatch.setattr("tidal_cli.cli.get_favorite_tracks", _returning(TRACKS))

    result = runner.invoke(cli.app, ["--plain", "library", "tracks"])

    assert result.exit_code == 0
    assert result.stdout.splitlines()[0] == "1\tMiles Davis\tSo What\tKind of Blue\t562"


def test_sync_ids(monkeypatch, logging_calls):
    monkeypatch.setattr("tidal_cli.cli.get_favorite_tracks", _returning(TRACKS))

    result = runner.invoke(cli.app, ["-v", "sync", "--format", "ids"])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["1", "2"]
    assert logging_calls == [{"verbose": True, "log_file": None}]


def test_search_dispatches_by_type(monkeypatch):
    monkeypatch.setattr("tidal_cli.cli.search_albums", _returning([Album(id="al1", title="Blue", artist="Joni")]))
    monkeypatch.setattr("tidal_cli.cli.search_artists", _returning(None))

    result = runner.invoke(cli.app, ["search", "blue", "--type", "album"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["albums"][0]["id"] == "al1"

    result = runner.invoke(cli.app, ["search", "nobody", "--type", "artist"])
    assert result.exit_code == 1
    assert "No artist found." in result.output


def test_errors_exit_with_message(monkeypatch):
    async def throttled(*args, **kwargs):
        raise RateLimitedError("getFavoriteAlbums", "Too Many Requests")

    monkeypatch.setattr("tidal_cli.cli.get_favorite_albums", throttled)

    result = runner.invoke(cli.app, ["library", "albums"])

    assert result.exit_code == 1
    assert "Error: getFavoriteAlbums failed (429): Too Many Requests" in result.output


def test_playlist_create_reads_ids_from_stdin(monkeypatch):
    added = []
    monkeypatch.setattr(
        "tidal_cli.cli.create_playlist", _returning(Playlist(id="pl-1", title="Jazz Mix"))
    )
    monkeypatch.setattr("tidal_cli.cli.add_tracks_to_playlist", _returning(3, added))

    result = runner.invoke(cli.app, ["playlist", "create", "--name", "Jazz Mix"], input="11\n22, x\n33,\n")

    assert result.exit_code == 0, result.output
    assert added == [("pl-1", ["11", "22", "33"])]
    assert json.loads(result.stdout) == {
        "id": "pl-1",
        "name": "Jazz Mix",
        "trackCount": 3,
        "url": "https://listen.tidal.com/playlist/pl-1",
    }


def test_playlist_create_without_ids_fails(monkeypatch):
    result = runner.invoke(cli.app, ["playlist", "create", "--name", "Empty"], input="")
    assert result.exit_code == 1
    assert "No track IDs provided" in result.output


def test_parse_track_ids():
    assert cli.parse_track_ids("1\n2,3\n\nabc,4a, 5 ") == ["1", "2", "3", "5"]


def test_similar_and_radio(monkeypatch):
    radio_calls = []
    monkeypatch.setattr("tidal_cli.cli.get_similar_artists", _returning([Artist(id=7, name="Coltrane")]))
    monkeypatch.setattr("tidal_cli.cli.get_artist_radio", _returning(TRACKS, radio_calls))

    result = runner.invoke(cli.app, ["--plain", "similar", "5"])
    assert result.stdout.strip() == "7\tColtrane"

    result = runner.invoke(cli.app, ["radio", "5", "--artist", "--limit", "2"])
    assert result.exit_code == 0
    assert radio_calls == [("5", 2)]


def test_lyrics(monkeypatch):
    monkeypatch.setattr("tidal_cli.cli.get_lyrics", _returning(Lyrics(track_id="1", text="la la")))
    result = runner.invoke(cli.app, ["lyrics", "1"])
    assert result.stdout.strip() == "la la"

    monkeypatch.setattr("tidal_cli.cli.get_lyrics", _returning(None))
    result = runner.invoke(cli.app, ["lyrics", "1"])
    assert result.exit_code == 1


def test_recommendations_filter(monkeypatch):
    monkeypatch.setattr("tidal_cli.cli.get_my_mixes", _returning([Mix(id="m1", title="My Mix 1")]))

    result = runner.invoke(cli.app, ["recommendations", "--type", "my"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"myMixes": [{"id": "m1", "title": "My Mix 1", "sub_title": ""}]}


def test_track_info_not_found(monkeypatch):
    monkeypatch.setattr("tidal_cli.cli.get_track", _returning(None))
    result = runner.invoke(cli.app, ["track", "info", "404"])
    assert result.exit_code == 1
    assert "Track 404 not found" in result.output


def test_status_variants(monkeypatch):
    info = NowPlaying(title="So What", artist="Miles Davis", album="Kind of Blue", is_playing=False, duration=562, elapsed=65)
    monkeypatch.setattr("tidal_cli.cli.get_now_playing", _returning(info))

    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 0
    assert "Paused: So What" in result.stdout
    assert "1:05 / 9:22" in result.stdout

    result = runner.invoke(cli.app, ["now", "--json"])
    assert json.loads(result.stdout)["title"] == "So What"


def test_status_without_helper(monkeypatch):
    async def missing():
        raise NotFoundError("Is nowplaying-cli installed?")

    monkeypatch.setattr("tidal_cli.cli.get_now_playing", missing)
    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 1
    assert "nowplaying-cli" in result.output


class DummyPlayer:
    def __init__(self, state="paused"):
        self.state = state
        self.clicked = []
        self.volume = 40

    async def click_transport(self, label):
        self.clicked.append(label)
        return label != "Repeat"

    async def playback_state(self):
        return self.state

    async def get_volume(self):
        return self.volume

    async def set_volume(self, level):
        self.volume = level
        return True


@pytest.fixture()
def player(monkeypatch):
    dummy = DummyPlayer()
    monkeypatch.setattr("tidal_cli.cli.connect_player", _returning(dummy))
    return dummy


def test_transport_commands(player):
    assert runner.invoke(cli.app, ["next"]).stdout.strip() == "Next"
    assert runner.invoke(cli.app, ["pause"]).stdout.strip() == "Paused"
    assert runner.invoke(cli.app, ["repeat"]).stdout.strip() == "No repeat button found"
    assert player.clicked == ["Next", "Pause", "Repeat"]


def test_resume_when_already_playing(player):
    player.state = "playing"
    assert runner.invoke(cli.app, ["resume"]).stdout.strip() == "Already playing"
    assert player.clicked == []


def test_volume(player):
    assert runner.invoke(cli.app, ["volume"]).stdout.strip() == "Volume: 40%"
    assert runner.invoke(cli.app, ["volume", "75"]).stdout.strip() == "Volume: 75%"
    assert runner.invoke(cli.app, ["volume", "150"]).exit_code != 0


def test_state_command(monkeypatch):
    async def observe(self):
        return ReadinessState.CONNECTING

    monkeypatch.setattr("tidal_cli.cli.ReadinessTracker.observe", observe)
    result = runner.invoke(cli.app, ["state"])
    assert result.stdout.strip() == "Connecting"


def test_auth_status_without_credentials():
    result = runner.invoke(cli.app, ["auth", "status"])
    assert result.exit_code == 0
    assert "Not logged in" in result.stdout

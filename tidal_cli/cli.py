from __future__ import annotations

import asyncio
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Coroutine, List, Optional, Sequence, TypeVar

import typer
from loguru import logger

from tidal_cli.auth import Authenticator
from tidal_cli.catalog.albums import get_album_details, get_album_tracks, get_similar_albums
from tidal_cli.catalog.artists import (
    get_artist_albums,
    get_artist_bio,
    get_artist_details,
    get_artist_radio,
    get_artist_top_tracks,
    get_similar_artists,
)
from tidal_cli.catalog.client import TidalSession, open_session
from tidal_cli.catalog.collections import (
    get_favorite_albums,
    get_favorite_artists,
    get_favorite_tracks,
    get_user_playlists,
)
from tidal_cli.catalog.playlists import (
    add_tracks_to_playlist,
    create_playlist,
    delete_playlist,
    remove_tracks_from_playlist,
)
from tidal_cli.catalog.recommendations import get_discovery_mixes, get_my_mixes, get_new_arrival_mixes
from tidal_cli.catalog.search import search_albums, search_artists, search_playlists, search_top_hits, search_tracks
from tidal_cli.catalog.tracks import get_lyrics, get_playlist_tracks, get_track, get_track_radio
from tidal_cli.config import AppConfig
from tidal_cli.desktop.actions import DesktopPlayerActions
from tidal_cli.desktop.launcher import DesktopLauncher
from tidal_cli.desktop.nowplaying import NowPlaying, format_time, get_now_playing
from tidal_cli.desktop.protocol import DevToolsClient
from tidal_cli.desktop.resources import parse_resource
from tidal_cli.desktop.state import ReadinessState, ReadinessTracker
from tidal_cli.errors import ConfigurationError, NotFoundError, TidalCliError
from tidal_cli.formatter import (
    counted,
    dump_json,
    plain_albums,
    plain_artists,
    plain_kv,
    plain_playlists,
    plain_tracks,
)
from tidal_cli.log import setup_logging

T = TypeVar("T")

READY_TIMEOUT = 30.0
PAGE_SETTLE = 1.0
PLAYBACK_SETTLE = 2.0

app = typer.Typer(add_completion=False, help="Control TIDAL from the command line.")
library_app = typer.Typer(add_completion=False, help="Browse your TIDAL library.")
playlist_app = typer.Typer(add_completion=False, help="Manage TIDAL playlists.")
artist_app = typer.Typer(add_completion=False, help="Artist information.")
album_app = typer.Typer(add_completion=False, help="Album information.")
track_app = typer.Typer(add_completion=False, help="Track information.")
auth_app = typer.Typer(add_completion=False, help="Manage TIDAL authentication.")

app.add_typer(library_app, name="library")
app.add_typer(playlist_app, name="playlist")
app.add_typer(artist_app, name="artist")
app.add_typer(album_app, name="album")
app.add_typer(track_app, name="track")
app.add_typer(auth_app, name="auth")


@dataclass
class CliState:
    config: AppConfig = field(default_factory=AppConfig)
    plain: bool = False


def _state(ctx: typer.Context) -> CliState:
    if not isinstance(ctx.obj, CliState):
        ctx.obj = CliState()
    return ctx.obj


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run one command's coroutine; library errors become ``Error: ...`` and exit code 1."""
    try:
        return asyncio.run(coro)
    except TidalCliError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


async def with_session(config: AppConfig, call: Callable[[TidalSession], Awaitable[T]]) -> T:
    async with open_session(config) as session:
        return await call(session)


async def connect_player(config: AppConfig) -> DesktopPlayerActions:
    """Start the app if needed and wait until its player UI is loaded."""
    await DesktopLauncher(config).ensure_running()
    await ReadinessTracker(port=config.cdp_port).wait_for(ReadinessState.READY, timeout=READY_TIMEOUT)
    return DesktopPlayerActions(DevToolsClient(config))


def _emit(state: CliState, kind: str, items: Sequence[Any], plain: Callable[[Sequence[Any]], str]) -> None:
    if state.plain:
        text = plain(items)
        if text:
            typer.echo(text)
    else:
        typer.echo(counted(kind, items))


def _emit_ids(items: Sequence[Any]) -> None:
    for item in items:
        typer.echo(str(item.id))


def parse_track_ids(text: str) -> List[str]:
    """Split on newlines or commas and keep purely numeric entries."""
    return [part.strip() for part in re.split(r"[\n,]+", text) if re.fullmatch(r"\d+", part.strip())]


def _read_stdin() -> str:
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.read()


@app.callback()
def main_options(
    ctx: typer.Context,
    plain: bool = typer.Option(False, "--plain", help="TAB-separated output instead of JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write a rotating debug log."),
) -> None:
    config = AppConfig()
    setup_logging(verbose=verbose or config.debug, log_file=log_file)
    ctx.obj = CliState(config=config, plain=plain)


# ---- catalog ----


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(...),
    type_: str = typer.Option("track", "--type", help="track, album, artist, playlist or top."),
    limit: int = typer.Option(20, "--limit", min=1),
) -> None:
    """Search the TIDAL catalog."""
    state = _state(ctx)
    kind = type_.lower()

    if kind in ("artist", "artists"):
        artist = run(with_session(state.config, lambda s: search_artists(s, query)))
        if artist is None:
            typer.echo("No artist found.", err=True)
            raise typer.Exit(code=1)
        typer.echo(plain_artists([artist]) if state.plain else dump_json(artist))
    elif kind in ("album", "albums"):
        albums = run(with_session(state.config, lambda s: search_albums(s, query, limit)))
        _emit(state, "albums", albums, plain_albums)
    elif kind in ("playlist", "playlists"):
        playlists = run(with_session(state.config, lambda s: search_playlists(s, query, limit)))
        _emit(state, "playlists", playlists, plain_playlists)
    elif kind in ("top", "tophits"):
        tracks = run(with_session(state.config, lambda s: search_top_hits(s, query, limit)))
        _emit(state, "tracks", tracks, plain_tracks)
    else:
        tracks = run(with_session(state.config, lambda s: search_tracks(s, query, limit)))
        _emit(state, "tracks", tracks, plain_tracks)


@library_app.command("tracks")
def library_tracks(
    ctx: typer.Context,
    limit: int = typer.Option(100, "--limit", min=1),
    format_: str = typer.Option("json", "--format", help="json or ids."),
) -> None:
    """List favorite tracks."""
    state = _state(ctx)
    tracks = run(with_session(state.config, lambda s: get_favorite_tracks(s, limit)))
    if format_ == "ids":
        _emit_ids(tracks)
    else:
        _emit(state, "tracks", tracks, plain_tracks)


@library_app.command("albums")
def library_albums(ctx: typer.Context, limit: int = typer.Option(50, "--limit", min=1)) -> None:
    """List favorite albums."""
    state = _state(ctx)
    albums = run(with_session(state.config, lambda s: get_favorite_albums(s, limit)))
    _emit(state, "albums", albums, plain_albums)


@library_app.command("artists")
def library_artists(ctx: typer.Context, limit: int = typer.Option(50, "--limit", min=1)) -> None:
    """List favorite artists."""
    state = _state(ctx)
    artists = run(with_session(state.config, lambda s: get_favorite_artists(s, limit)))
    _emit(state, "artists", artists, plain_artists)


@library_app.command("playlists")
def library_playlists(ctx: typer.Context, limit: int = typer.Option(50, "--limit", min=1)) -> None:
    """List your playlists."""
    state = _state(ctx)
    playlists = run(with_session(state.config, lambda s: get_user_playlists(s, limit)))
    _emit(state, "playlists", playlists, plain_playlists)


@app.command()
def sync(
    ctx: typer.Context,
    limit: int = typer.Option(500, "--limit", min=1),
    format_: str = typer.Option("json", "--format", help="json or ids."),
) -> None:
    """Fetch favorite tracks from TIDAL."""
    state = _state(ctx)
    logger.info(f"[sync] Fetching favorite tracks (limit: {limit})...")
    tracks = run(with_session(state.config, lambda s: get_favorite_tracks(s, limit)))
    logger.info(f"[sync] Got {len(tracks)} tracks")
    if format_.lower() == "ids":
        _emit_ids(tracks)
    else:
        _emit(state, "tracks", tracks, plain_tracks)


@playlist_app.command("create")
def playlist_create(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name"),
    description: Optional[str] = typer.Option(None, "--description"),
    public: bool = typer.Option(False, "--public", help="Public instead of unlisted."),
) -> None:
    """Create a playlist from track IDs read on stdin."""
    state = _state(ctx)
    track_ids = parse_track_ids(_read_stdin())
    if not track_ids:
        typer.echo(
            'Error: No track IDs provided. Pipe IDs via stdin:\n  tidal-cli playlist create --name "Jazz Mix" < track-ids.txt',
            err=True,
        )
        raise typer.Exit(code=1)

    logger.info(f"[playlist] Creating playlist: {name} ({len(track_ids)} tracks)")

    async def create(session: TidalSession) -> Any:
        playlist = await create_playlist(session, name, description, is_public=public)
        logger.info(f"[playlist] Created: {playlist.title} ({playlist.id})")
        added = await add_tracks_to_playlist(session, playlist.id, track_ids)
        logger.info(f"[playlist] Added {added} tracks")
        return {
            "id": playlist.id,
            "name": playlist.title,
            "trackCount": added,
            "url": f"https://listen.tidal.com/playlist/{playlist.id}",
        }

    typer.echo(dump_json(run(with_session(state.config, create))))


@playlist_app.command("delete")
def playlist_delete(ctx: typer.Context, playlist_id: str = typer.Argument(...)) -> None:
    """Delete a playlist."""
    state = _state(ctx)
    run(with_session(state.config, lambda s: delete_playlist(s, playlist_id)))
    logger.info(f"[playlist] Deleted: {playlist_id}")
    typer.echo(dump_json({"deleted": playlist_id}))


@playlist_app.command("remove")
def playlist_remove(
    ctx: typer.Context,
    playlist_id: str = typer.Argument(...),
    track_ids: List[str] = typer.Argument(...),
) -> None:
    """Remove tracks from a playlist."""
    state = _state(ctx)
    removed = run(with_session(state.config, lambda s: remove_tracks_from_playlist(s, playlist_id, track_ids)))
    logger.info(f"[playlist] Removed {removed} tracks from {playlist_id}")
    typer.echo(dump_json({"playlistId": playlist_id, "removedCount": removed}))


@playlist_app.command("tracks")
def playlist_tracks(
    ctx: typer.Context,
    playlist_id: str = typer.Argument(...),
    limit: int = typer.Option(100, "--limit", min=1),
) -> None:
    """List the tracks of a playlist."""
    state = _state(ctx)
    tracks = run(with_session(state.config, lambda s: get_playlist_tracks(s, playlist_id, limit)))
    _emit(state, "tracks", tracks, plain_tracks)


@artist_app.command("info")
def artist_info(ctx: typer.Context, artist_id: str = typer.Argument(...)) -> None:
    """Artist name, popularity and links."""
    state = _state(ctx)
    details = run(with_session(state.config, lambda s: get_artist_details(s, artist_id)))
    if state.plain:
        typer.echo(plain_kv({"id": details.id, "name": details.name, "popularity": details.popularity, "picture": details.picture}))
    else:
        typer.echo(dump_json(details))


@artist_app.command("bio")
def artist_bio(ctx: typer.Context, artist_id: str = typer.Argument(...)) -> None:
    """Artist biography."""
    state = _state(ctx)
    bio = run(with_session(state.config, lambda s: get_artist_bio(s, artist_id)))
    if bio is None:
        typer.echo("No biography found for this artist.", err=True)
        raise typer.Exit(code=1)
    typer.echo(bio.text if state.plain else dump_json(bio))


@artist_app.command("tracks")
def artist_tracks(
    ctx: typer.Context,
    artist_id: str = typer.Argument(...),
    limit: int = typer.Option(10, "--limit", min=1),
) -> None:
    """Top tracks of an artist."""
    state = _state(ctx)
    tracks = run(with_session(state.config, lambda s: get_artist_top_tracks(s, artist_id, limit)))
    _emit(state, "tracks", tracks, plain_tracks)


@artist_app.command("albums")
def artist_albums(
    ctx: typer.Context,
    artist_id: str = typer.Argument(...),
    limit: int = typer.Option(50, "--limit", min=1),
) -> None:
    """Albums of an artist, newest first."""
    state = _state(ctx)
    albums = run(with_session(state.config, lambda s: get_artist_albums(s, artist_id, limit)))
    _emit(state, "albums", albums, plain_albums)


@album_app.command("info")
def album_info(ctx: typer.Context, album_id: str = typer.Argument(...)) -> None:
    """Album details."""
    state = _state(ctx)
    album = run(with_session(state.config, lambda s: get_album_details(s, album_id)))
    typer.echo(plain_albums([album]) if state.plain else dump_json(album))


@album_app.command("tracks")
def album_tracks(
    ctx: typer.Context,
    album_id: str = typer.Argument(...),
    limit: int = typer.Option(100, "--limit", min=1),
) -> None:
    """Tracks of an album."""
    state = _state(ctx)
    tracks = run(with_session(state.config, lambda s: get_album_tracks(s, album_id, limit)))
    _emit(state, "tracks", tracks, plain_tracks)


@album_app.command("similar")
def album_similar(
    ctx: typer.Context,
    album_id: str = typer.Argument(...),
    limit: int = typer.Option(10, "--limit", min=1),
) -> None:
    """Albums similar to an album."""
    state = _state(ctx)
    albums = run(with_session(state.config, lambda s: get_similar_albums(s, album_id, limit)))
    _emit(state, "albums", albums, plain_albums)


@track_app.command("info")
def track_info(ctx: typer.Context, track_id: str = typer.Argument(...)) -> None:
    """Track details with artist, album, genres and audio features."""
    state = _state(ctx)

    async def load(session: TidalSession) -> Any:
        track = await get_track(session, track_id)
        if track is None:
            raise NotFoundError(f"Track {track_id} not found")
        return track

    track = run(with_session(state.config, load))
    typer.echo(plain_tracks([track]) if state.plain else dump_json(track))


@app.command()
def similar(
    ctx: typer.Context,
    artist_id: str = typer.Argument(...),
    limit: int = typer.Option(10, "--limit", min=1),
) -> None:
    """Show similar artists."""
    state = _state(ctx)
    artists = run(with_session(state.config, lambda s: get_similar_artists(s, artist_id, limit)))
    _emit(state, "artists", artists, plain_artists)


@app.command()
def radio(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., metavar="ID"),
    artist: bool = typer.Option(False, "--artist", help="Treat the ID as an artist ID."),
    limit: int = typer.Option(20, "--limit", min=1),
) -> None:
    """Radio tracks based on a track or an artist."""
    state = _state(ctx)
    fetch = get_artist_radio if artist else get_track_radio
    tracks = run(with_session(state.config, lambda s: fetch(s, item_id, limit)))
    _emit(state, "tracks", tracks, plain_tracks)


@app.command()
def lyrics(
    ctx: typer.Context,
    track_id: str = typer.Argument(...),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show lyrics for a track."""
    state = _state(ctx)
    result = run(with_session(state.config, lambda s: get_lyrics(s, track_id)))
    if result is None:
        typer.echo("No lyrics found for this track.", err=True)
        raise typer.Exit(code=1)
    typer.echo(dump_json(result) if as_json else result.text)


@app.command()
def recommendations(
    ctx: typer.Context,
    type_: str = typer.Option("all", "--type", help="all, discovery, my or new."),
) -> None:
    """Show personalized mixes."""
    state = _state(ctx)
    kind = type_.lower()

    async def load(session: TidalSession) -> Any:
        result = {}
        if kind in ("all", "discovery"):
            result["discoveryMixes"] = await get_discovery_mixes(session)
        if kind in ("all", "my"):
            result["myMixes"] = await get_my_mixes(session)
        if kind in ("all", "new"):
            result["newArrivalMixes"] = await get_new_arrival_mixes(session)
        return result

    typer.echo(dump_json(run(with_session(state.config, load))))


# ---- desktop playback ----


@app.command()
def play(ctx: typer.Context, resource: str = typer.Argument(..., help="TIDAL URL, type/id or bare track ID.")) -> None:
    """Play a track, album, playlist or mix in the desktop app."""
    state = _state(ctx)
    target = parse_resource(resource)
    typer.echo(f"Playing {target.type}/{target.id}")

    async def start() -> bool:
        player = await connect_player(state.config)
        await player.client.navigate(target.desktop_url)
        await asyncio.sleep(PAGE_SETTLE)
        return await player.play_page()

    if not run(start()):
        typer.echo("Could not find play button. Page may still be loading.", err=True)
        raise typer.Exit(code=1)

    info = run(_settled_now_playing())
    if info is None:
        typer.echo("Play command sent")
    elif info.is_playing:
        typer.echo(f"{info.title} - {info.artist}")
        if info.duration > 0:
            typer.echo(f"  {format_time(info.elapsed)} / {format_time(info.duration)}")
    else:
        typer.echo("Playback started but may be buffering...")


async def _settled_now_playing() -> Optional[NowPlaying]:
    await asyncio.sleep(PLAYBACK_SETTLE)
    try:
        return await get_now_playing()
    except NotFoundError as exc:
        logger.debug(f"[play] Now-playing unavailable: {exc}")
        return None


def _transport(ctx: typer.Context, label: str, done: str, missing: str) -> None:
    state = _state(ctx)

    async def click() -> bool:
        player = await connect_player(state.config)
        return await player.click_transport(label)

    typer.echo(done if run(click()) else missing)


@app.command()
def pause(ctx: typer.Context) -> None:
    """Pause playback."""
    _transport(ctx, "Pause", "Paused", "Not currently playing")


@app.command()
def resume(ctx: typer.Context) -> None:
    """Resume playback."""
    state = _state(ctx)

    async def press() -> str:
        player = await connect_player(state.config)
        if await player.playback_state() == "playing":
            return "Already playing"
        return "Resumed" if await player.click_transport("Play") else "Nothing to resume"

    typer.echo(run(press()))


@app.command("next")
def next_track(ctx: typer.Context) -> None:
    """Skip to the next track."""
    _transport(ctx, "Next", "Next", "No next button found")


@app.command("prev")
def previous_track(ctx: typer.Context) -> None:
    """Go to the previous track."""
    _transport(ctx, "Previous", "Previous", "No previous button found")


@app.command()
def shuffle(ctx: typer.Context) -> None:
    """Toggle shuffle mode."""
    _transport(ctx, "Shuffle", "Shuffle toggled", "No shuffle button found")


@app.command()
def repeat(ctx: typer.Context) -> None:
    """Toggle repeat mode."""
    _transport(ctx, "Repeat", "Repeat toggled", "No repeat button found")


@app.command()
def volume(
    ctx: typer.Context,
    level: Optional[int] = typer.Argument(None, min=0, max=100, help="New volume, 0-100."),
) -> None:
    """Get or set the volume."""
    state = _state(ctx)

    async def adjust() -> str:
        player = await connect_player(state.config)
        if level is None:
            current = await player.get_volume()
            return f"Volume: {current}%" if current is not None else "Could not read volume level"
        if await player.set_volume(level):
            return f"Volume: {level}%"
        return "Volume control not fully accessible"

    typer.echo(run(adjust()))


def status(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Output as JSON.")) -> None:
    """Show current playback status."""
    info = run(get_now_playing())
    if as_json:
        typer.echo(dump_json(info))
        return
    if not info.title:
        typer.echo("Nothing playing")
        return
    typer.echo(f"{'Playing' if info.is_playing else 'Paused'}: {info.title}")
    if info.artist:
        typer.echo(f"  Artist: {info.artist}")
    if info.album:
        typer.echo(f"  Album:  {info.album}")
    if info.duration > 0:
        typer.echo(f"  Time:   {format_time(info.elapsed)} / {format_time(info.duration)}")


app.command("status")(status)
app.command("now", hidden=True)(status)


@app.command("state")
def app_state(ctx: typer.Context) -> None:
    """Show the desktop app lifecycle state."""
    config = _state(ctx).config
    current = run(ReadinessTracker(port=config.cdp_port).observe())
    typer.echo(current.value)


# ---- authentication ----


@auth_app.command("login")
def auth_login(ctx: typer.Context) -> None:
    """Log in with your TIDAL account."""
    config = _state(ctx).config

    async def login() -> None:
        config.ensure_dirs()
        await Authenticator.from_config(config).login()

    run(login())
    typer.echo("Successfully logged in!")
    auth_status(ctx)


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Check authentication status."""
    config = _state(ctx).config
    try:
        authenticator = Authenticator.from_config(config)
    except ConfigurationError as exc:
        typer.echo(f"Not logged in ({exc})")
        return

    status_ = run(authenticator.status())
    if not status_.logged_in:
        typer.echo("Not logged in. Run: tidal-cli auth login")
        return
    typer.echo("Logged in")
    typer.echo(f"User ID: {status_.user_id}")
    if status_.expires_in is not None:
        if status_.expires_in > 0:
            typer.echo(f"Expires in: {round(status_.expires_in / 60)} minutes")
        else:
            typer.echo("Token expired (will auto-refresh on next use)")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Clear stored credentials."""
    config = _state(ctx).config
    try:
        authenticator = Authenticator.from_config(config)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if run(authenticator.logout()):
        typer.echo("Logged out (credentials cleared)")
    else:
        typer.echo("Already logged out.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

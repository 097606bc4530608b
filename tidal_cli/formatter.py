"""Output rendering.

JSON goes to stdout with two-space indentation. ``--plain`` output is
TAB-separated, one record per line, ID first, so it pipes into ``cut``
and ``awk``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Iterable, Mapping, Sequence

from tidal_cli.models import Album, Artist, Playlist, Track


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _row(*values: Any) -> str:
    return "\t".join(_cell(value) for value in values)


def plain_track(track: Track) -> str:
    return _row(track.id, track.artist, track.title, track.album, track.duration)


def plain_tracks(tracks: Iterable[Track]) -> str:
    return "\n".join(plain_track(track) for track in tracks)


def plain_artist(artist: Artist) -> str:
    return _row(artist.id, artist.name)


def plain_artists(artists: Iterable[Artist]) -> str:
    return "\n".join(plain_artist(artist) for artist in artists)


def plain_album(album: Album) -> str:
    return _row(album.id, album.artist, album.title, album.release_year, album.track_count)


def plain_albums(albums: Iterable[Album]) -> str:
    return "\n".join(plain_album(album) for album in albums)


def plain_playlist(playlist: Playlist) -> str:
    return _row(playlist.id, playlist.title)


def plain_playlists(playlists: Iterable[Playlist]) -> str:
    return "\n".join(plain_playlist(playlist) for playlist in playlists)


def plain_kv(values: Mapping[str, Any]) -> str:
    """One ``key<TAB>value`` line per non-null entry."""
    return "\n".join(f"{key}\t{value}" for key, value in values.items() if value is not None)


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


def dump_json(value: Any) -> str:
    return json.dumps(to_jsonable(value), indent=2, ensure_ascii=False)


def counted(kind: str, items: Sequence[Any]) -> str:
    """``{"count": n, "<kind>": [...]}``."""
    return dump_json({"count": len(items), kind: list(items)})

"""The signed-in user's library: favorite tracks, albums, artists and playlists."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from tidal_cli.catalog.albums import fetch_albums_by_ids
from tidal_cli.catalog.artists import fetch_artists_by_ids
from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import PageFetcher, collect_ids
from tidal_cli.catalog.playlists import fetch_playlists_by_ids
from tidal_cli.catalog.retry import with_retry
from tidal_cli.catalog.tracks import fetch_tracks_by_ids
from tidal_cli.models import Album, Artist, Playlist, Track


def _collection_pages(
    session: TidalSession,
    relationship: str,
    label: str,
    extra: Optional[Dict[str, Any]] = None,
) -> PageFetcher:
    async def fetch_page(cursor: Optional[str]) -> Optional[Mapping[str, Any]]:
        params = dict(extra or {})
        params["page[cursor]"] = cursor
        result = await with_retry(
            lambda: session.client.get(
                f"/userCollections/{session.user_id}/relationships/{relationship}",
                params=params,
            ),
            label=label,
        )
        return result.data

    return fetch_page


async def get_favorite_tracks(session: TidalSession, limit: int = 500) -> List[Track]:
    pages = _collection_pages(session, "tracks", "getFavoriteTracks", {"locale": "en-US", "include": ["tracks"]})
    track_ids = await collect_ids(pages, limit=limit, wanted_type="tracks", label="favoriteTracks")
    return await fetch_tracks_by_ids(session, track_ids)


async def get_favorite_albums(session: TidalSession, limit: int = 50) -> List[Album]:
    pages = _collection_pages(session, "albums", "getFavoriteAlbums")
    album_ids = await collect_ids(pages, limit=limit, wanted_type="albums", label="favoriteAlbums")
    return await fetch_albums_by_ids(session, album_ids)


async def get_favorite_artists(session: TidalSession, limit: int = 50) -> List[Artist]:
    pages = _collection_pages(session, "artists", "getFavoriteArtists")
    artist_ids = await collect_ids(pages, limit=limit, wanted_type="artists", label="favoriteArtists")
    return await fetch_artists_by_ids(session, artist_ids)


async def get_user_playlists(session: TidalSession, limit: int = 50) -> List[Playlist]:
    pages = _collection_pages(session, "playlists", "getUserPlaylists")
    playlist_ids = await collect_ids(pages, limit=limit, wanted_type="playlists", label="userPlaylists")
    return await fetch_playlists_by_ids(session, playlist_ids)

from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote

from tidal_cli.catalog.albums import fetch_albums_by_ids
from tidal_cli.catalog.base import ApiResult
from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import document_identifiers
from tidal_cli.catalog.playlists import fetch_playlists_by_ids
from tidal_cli.catalog.retry import with_empty_retry, with_retry
from tidal_cli.catalog.tracks import fetch_tracks_by_ids
from tidal_cli.models import Album, Artist, Playlist, ResourceIdentifier, Track

ARTIST_SEARCH_RETRIES = 2


async def _search(session: TidalSession, query: str, relationship: str, limit: int) -> List[ResourceIdentifier]:
    result: ApiResult = await with_retry(
        lambda: session.client.get(
            f"/searchResults/{quote(query, safe='')}/relationships/{relationship}",
            params={"page[limit]": limit},
        ),
        label=f'search/{relationship}("{query}")',
    )
    return document_identifiers(result.data)


async def search_artists(session: TidalSession, query: str) -> Optional[Artist]:
    """Best artist match for ``query``.

    Search sometimes answers with nothing under load, so an empty answer is
    retried a couple of times before giving up with ``None``.
    """

    async def attempt() -> Optional[Artist]:
        identifiers = await _search(session, query, "artists", 1)
        if not identifiers or not identifiers[0].id:
            return None
        return Artist(id=int(identifiers[0].id), name=query)

    return await with_empty_retry(
        attempt,
        lambda artist: False,
        max_retries=ARTIST_SEARCH_RETRIES,
        label=f'searchArtists("{query}")',
    )


async def search_tracks(session: TidalSession, query: str, limit: int = 20) -> List[Track]:
    identifiers = await _search(session, query, "tracks", limit)
    return await fetch_tracks_by_ids(session, [identifier.id for identifier in identifiers][:limit])


async def search_albums(session: TidalSession, query: str, limit: int = 20) -> List[Album]:
    identifiers = await _search(session, query, "albums", limit)
    return await fetch_albums_by_ids(session, [identifier.id for identifier in identifiers][:limit])


async def search_playlists(session: TidalSession, query: str, limit: int = 20) -> List[Playlist]:
    identifiers = await _search(session, query, "playlists", limit)
    return await fetch_playlists_by_ids(session, [identifier.id for identifier in identifiers][:limit])


async def search_top_hits(session: TidalSession, query: str, limit: int = 20) -> List[Track]:
    identifiers = await _search(session, query, "topHits", limit)
    track_ids = [identifier.id for identifier in identifiers if identifier.type == "tracks"]
    return await fetch_tracks_by_ids(session, track_ids[:limit])

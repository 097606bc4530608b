from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from tidal_cli.catalog.base import TRACK_BATCH_SIZE
from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import collect_ids, document_identifiers, fetch_in_batches
from tidal_cli.catalog.resolver import (
    included_map_of,
    map_track_resource,
    primary_resources,
    resolve_genre_names,
    resolve_track_meta,
)
from tidal_cli.catalog.retry import with_retry
from tidal_cli.models import Lyrics, LyricsAttributes, Track

TRACK_INCLUDES = ["artists", "albums", "genres"]


async def fetch_tracks_by_ids(session: TidalSession, track_ids: Sequence[str]) -> List[Track]:
    """Batch-fetch tracks with artist, album and genre resolution, keeping ``track_ids`` order."""
    if not track_ids:
        return []

    async def fetch_batch(chunk: List[str]) -> List[Track]:
        result = await with_retry(
            lambda: session.client.get(
                "/tracks",
                params={"filter[id]": chunk, "include": TRACK_INCLUDES},
            ),
            label=f"fetchTracks({len(chunk)} ids)",
        )
        included_map = included_map_of(result.data)
        return [
            map_track_resource(track, resolve_track_meta(track, included_map))
            for track in primary_resources(result.data)
        ]

    return await fetch_in_batches(
        [str(track_id) for track_id in track_ids],
        fetch_batch,
        batch_size=TRACK_BATCH_SIZE,
        key=lambda track: str(track.id),
        label="fetchTracks",
    )


async def get_track(session: TidalSession, track_id: str) -> Optional[Track]:
    tracks = await fetch_tracks_by_ids(session, [str(track_id)])
    return tracks[0] if tracks else None


async def get_similar_tracks(session: TidalSession, track_id: str, limit: int = 20) -> List[Track]:
    result = await with_retry(
        lambda: session.client.get(
            f"/tracks/{track_id}/relationships/similarTracks",
            params={"include": ["artists", "albums"], "page[limit]": limit},
        ),
        label=f"similarTracks({track_id})",
    )
    track_ids = [identifier.id for identifier in document_identifiers(result.data)]
    return await fetch_tracks_by_ids(session, track_ids[:limit])


async def get_playlist_tracks(session: TidalSession, playlist_id: str, limit: int = 100) -> List[Track]:
    async def fetch_page(cursor: Optional[str]) -> Optional[Mapping[str, Any]]:
        result = await with_retry(
            lambda: session.client.get(
                f"/playlists/{playlist_id}/relationships/items",
                params={"page[cursor]": cursor},
            ),
            label=f"getPlaylistTracks({playlist_id[:8]})",
        )
        return result.data

    track_ids = await collect_ids(
        fetch_page, limit=limit, wanted_type="tracks", label=f"playlistItems({playlist_id[:8]})"
    )
    return await fetch_tracks_by_ids(session, track_ids)


async def resolve_radio(
    session: TidalSession, document: Optional[Mapping[str, Any]], limit: int
) -> List[Track]:
    """Turn a radio relationship into tracks.

    The endpoint answers either with a playlist (a single identifier or the
    first ``playlists`` entry of a list), whose items are then fetched, or
    with plain track identifiers.
    """
    data = (document or {}).get("data")
    if isinstance(data, dict):
        playlist_id = data.get("id")
        return await get_playlist_tracks(session, str(playlist_id), limit) if playlist_id else []

    identifiers = document_identifiers(document)
    playlists = [identifier for identifier in identifiers if identifier.type == "playlists" and identifier.id]
    if playlists:
        return await get_playlist_tracks(session, playlists[0].id, limit)

    track_ids = [identifier.id for identifier in identifiers if identifier.type == "tracks"]
    return await fetch_tracks_by_ids(session, track_ids[:limit])


async def get_track_radio(session: TidalSession, track_id: str, limit: int = 20) -> List[Track]:
    result = await with_retry(
        lambda: session.client.get(f"/tracks/{track_id}/relationships/radio"),
        label=f"trackRadio({track_id})",
    )
    return await resolve_radio(session, result.data, limit)


async def get_lyrics(session: TidalSession, track_id: str) -> Optional[Lyrics]:
    result = await with_retry(
        lambda: session.client.get(
            f"/tracks/{track_id}/relationships/lyrics",
            params={"include": ["lyrics"]},
        ),
        label=f"getLyrics({track_id})",
    )
    included_map = included_map_of(result.data)
    for identifier in document_identifiers(result.data):
        resource = included_map.get(identifier.key)
        if resource is None or not isinstance(resource.attributes, LyricsAttributes):
            continue
        if resource.attributes.text:
            return Lyrics(track_id=str(track_id), text=resource.attributes.text, provider=resource.attributes.provider)
    return None


async def get_track_genres(session: TidalSession, track_id: str) -> List[str]:
    result = await with_retry(
        lambda: session.client.get(
            f"/tracks/{track_id}/relationships/genres",
            params={"include": ["genres"]},
        ),
        label=f"getTrackGenres({track_id})",
    )
    return resolve_genre_names(document_identifiers(result.data), included_map_of(result.data))

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from tidal_cli.catalog.base import DETAIL_BATCH_SIZE
from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import collect_ids, document_identifiers, fetch_in_batches
from tidal_cli.catalog.resolver import included_map_of, map_album_resource, primary_resources
from tidal_cli.catalog.retry import with_retry
from tidal_cli.catalog.tracks import fetch_tracks_by_ids
from tidal_cli.errors import NotFoundError
from tidal_cli.models import Album, Track


async def fetch_albums_by_ids(session: TidalSession, album_ids: Sequence[str]) -> List[Album]:
    if not album_ids:
        return []

    async def fetch_batch(chunk: List[str]) -> List[Album]:
        result = await with_retry(
            lambda: session.client.get("/albums", params={"filter[id]": chunk, "include": ["artists"]}),
            label=f"fetchAlbums({len(chunk)} ids)",
        )
        included_map = included_map_of(result.data)
        return [map_album_resource(album, included_map) for album in primary_resources(result.data)]

    return await fetch_in_batches(
        [str(album_id) for album_id in album_ids],
        fetch_batch,
        batch_size=DETAIL_BATCH_SIZE,
        key=lambda album: album.id,
        label="fetchAlbums",
    )


async def get_album_tracks(session: TidalSession, album_id: str, limit: int = 100) -> List[Track]:
    async def fetch_page(cursor: Optional[str]) -> Optional[Mapping[str, Any]]:
        result = await with_retry(
            lambda: session.client.get(
                f"/albums/{album_id}/relationships/items",
                params={"page[cursor]": cursor},
            ),
            label=f"getAlbumTracks({album_id})",
        )
        return result.data

    track_ids = await collect_ids(fetch_page, limit=limit, wanted_type="tracks", label=f"albumItems({album_id})")
    return await fetch_tracks_by_ids(session, track_ids)


async def get_album_details(session: TidalSession, album_id: str) -> Album:
    result = await with_retry(
        lambda: session.client.get(f"/albums/{album_id}", params={"include": ["artists"]}),
        label=f"getAlbumDetails({album_id})",
    )
    albums = primary_resources(result.data)
    if not albums:
        raise NotFoundError(f"Album {album_id} not found")
    return map_album_resource(albums[0], included_map_of(result.data))


async def get_similar_albums(session: TidalSession, album_id: str, limit: int = 10) -> List[Album]:
    result = await with_retry(
        lambda: session.client.get(
            f"/albums/{album_id}/relationships/similarAlbums",
            params={"page[limit]": limit},
        ),
        label=f"getSimilarAlbums({album_id})",
    )
    album_ids = [identifier.id for identifier in document_identifiers(result.data)]
    return await fetch_albums_by_ids(session, album_ids[:limit])

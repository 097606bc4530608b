from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from tidal_cli.catalog.base import DETAIL_BATCH_SIZE, PLAYLIST_ITEMS_BATCH_SIZE, RATE_LIMIT_DELAY, delay
from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import fetch_in_batches
from tidal_cli.catalog.resolver import UNKNOWN, map_playlist_resource, primary_resources
from tidal_cli.catalog.retry import with_retry
from tidal_cli.errors import RequestFailedError
from tidal_cli.models import Playlist


def _item_document(track_ids: Sequence[str]) -> Dict[str, Any]:
    return {"data": [{"id": str(track_id), "type": "tracks"} for track_id in track_ids]}


async def fetch_playlists_by_ids(session: TidalSession, playlist_ids: Sequence[str]) -> List[Playlist]:
    if not playlist_ids:
        return []

    async def fetch_batch(chunk: List[str]) -> List[Playlist]:
        result = await with_retry(
            lambda: session.client.get("/playlists", params={"filter[id]": chunk}),
            label=f"fetchPlaylists({len(chunk)} ids)",
        )
        return [map_playlist_resource(playlist) for playlist in primary_resources(result.data)]

    return await fetch_in_batches(
        [str(playlist_id) for playlist_id in playlist_ids],
        fetch_batch,
        batch_size=DETAIL_BATCH_SIZE,
        key=lambda playlist: playlist.id,
        label="fetchPlaylists",
    )


async def create_playlist(
    session: TidalSession,
    name: str,
    description: Optional[str] = None,
    is_public: bool = False,
) -> Playlist:
    body = {
        "data": {
            "type": "playlists",
            "attributes": {
                "name": name,
                "description": description or "",
                "accessType": "PUBLIC" if is_public else "UNLISTED",
            },
        }
    }
    result = await with_retry(lambda: session.client.post("/playlists", json=body), label="createPlaylist")
    created = primary_resources(result.data)
    if not created or not created[0].id:
        raise RequestFailedError("createPlaylist", result.status, "Playlist created but no ID returned")
    playlist = map_playlist_resource(created[0])
    if playlist.title == UNKNOWN:
        playlist = replace(playlist, title=name)
    logger.debug(f"Created playlist {playlist.id}")
    return playlist


async def _change_items(session: TidalSession, method: str, playlist_id: str, track_ids: Sequence[str]) -> int:
    changed = 0
    for index, start in enumerate(range(0, len(track_ids), PLAYLIST_ITEMS_BATCH_SIZE)):
        if index:
            await delay(RATE_LIMIT_DELAY)
        batch = list(track_ids[start : start + PLAYLIST_ITEMS_BATCH_SIZE])
        await with_retry(
            lambda: session.client.request(
                method,
                f"/playlists/{playlist_id}/relationships/items",
                json=_item_document(batch),
            ),
            label=f"{method.lower()}PlaylistItems(batch {index + 1})",
        )
        changed += len(batch)
    return changed


async def add_tracks_to_playlist(session: TidalSession, playlist_id: str, track_ids: Sequence[str]) -> int:
    return await _change_items(session, "POST", playlist_id, track_ids)


async def remove_tracks_from_playlist(session: TidalSession, playlist_id: str, track_ids: Sequence[str]) -> int:
    return await _change_items(session, "DELETE", playlist_id, track_ids)


async def delete_playlist(session: TidalSession, playlist_id: str) -> None:
    await with_retry(lambda: session.client.delete(f"/playlists/{playlist_id}"), label=f"deletePlaylist({playlist_id})")

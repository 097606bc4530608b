from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from tidal_cli.catalog.albums import fetch_albums_by_ids
from tidal_cli.catalog.base import DETAIL_BATCH_SIZE
from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import collect_ids, document_identifiers, fetch_in_batches
from tidal_cli.catalog.resolver import UNKNOWN, map_artist_resource, primary_resources
from tidal_cli.catalog.retry import with_retry
from tidal_cli.catalog.tracks import fetch_tracks_by_ids, resolve_radio
from tidal_cli.errors import NotFoundError
from tidal_cli.models import Album, Artist, ArtistAttributes, ArtistDetails, Biography, BiographyAttributes, Track


async def fetch_artists_by_ids(session: TidalSession, artist_ids: Sequence[str]) -> List[Artist]:
    if not artist_ids:
        return []

    async def fetch_batch(chunk: List[str]) -> List[Artist]:
        result = await with_retry(
            lambda: session.client.get("/artists", params={"filter[id]": chunk}),
            label=f"fetchArtists({len(chunk)} ids)",
        )
        return [map_artist_resource(artist) for artist in primary_resources(result.data)]

    return await fetch_in_batches(
        [str(artist_id) for artist_id in artist_ids],
        fetch_batch,
        batch_size=DETAIL_BATCH_SIZE,
        key=lambda artist: str(artist.id),
        label="fetchArtists",
    )


async def get_artist_top_tracks(session: TidalSession, artist_id: str, limit: int = 10) -> List[Track]:
    result = await with_retry(
        lambda: session.client.get(
            f"/artists/{artist_id}/relationships/tracks",
            params={"collapseBy": "FINGERPRINT", "page[limit]": limit},
        ),
        label=f"getTopTracks({artist_id})",
    )
    track_ids = [identifier.id for identifier in document_identifiers(result.data)]
    return await fetch_tracks_by_ids(session, track_ids[:limit])


def _newest_first(albums: List[Album]) -> List[Album]:
    dated = sorted((album for album in albums if album.release_date), key=lambda a: a.release_date, reverse=True)
    undated = [album for album in albums if not album.release_date]
    return dated + undated


async def get_artist_albums(session: TidalSession, artist_id: str, limit: int = 50) -> List[Album]:
    """Albums of an artist, newest release first; undated albums go last."""

    async def fetch_page(cursor: Optional[str]) -> Optional[Mapping[str, Any]]:
        result = await with_retry(
            lambda: session.client.get(
                f"/artists/{artist_id}/relationships/albums",
                params={"page[cursor]": cursor},
            ),
            label=f"getArtistAlbums({artist_id})",
        )
        return result.data

    album_ids = await collect_ids(fetch_page, limit=limit, wanted_type="albums", label=f"artistAlbums({artist_id})")
    albums = await fetch_albums_by_ids(session, album_ids)
    return _newest_first(albums)[:limit]


async def get_similar_artists(session: TidalSession, artist_id: str, limit: int = 10) -> List[Artist]:
    result = await with_retry(
        lambda: session.client.get(
            f"/artists/{artist_id}/relationships/similarArtists",
            params={"page[limit]": limit},
        ),
        label=f"getSimilarArtists({artist_id})",
    )
    artist_ids = [identifier.id for identifier in document_identifiers(result.data)]
    return await fetch_artists_by_ids(session, artist_ids[:limit])


async def get_artist_radio(session: TidalSession, artist_id: str, limit: int = 20) -> List[Track]:
    result = await with_retry(
        lambda: session.client.get(f"/artists/{artist_id}/relationships/radio"),
        label=f"getArtistRadio({artist_id})",
    )
    return await resolve_radio(session, result.data, limit)


async def get_artist_details(session: TidalSession, artist_id: str) -> ArtistDetails:
    result = await with_retry(
        lambda: session.client.get("/artists", params={"filter[id]": [str(artist_id)]}),
        label=f"getArtistDetails({artist_id})",
    )
    artists = primary_resources(result.data)
    if not artists:
        raise NotFoundError(f"Artist {artist_id} not found")
    artist = artists[0]
    attrs = artist.attributes if isinstance(artist.attributes, ArtistAttributes) else ArtistAttributes()
    return ArtistDetails(
        id=artist.id,
        name=attrs.name or UNKNOWN,
        popularity=attrs.popularity,
        external_links=list(attrs.external_links),
        picture=attrs.picture,
    )


async def get_artist_bio(session: TidalSession, artist_id: str) -> Optional[Biography]:
    result = await with_retry(
        lambda: session.client.get(f"/artistBiographies/{artist_id}"),
        label=f"getArtistBio({artist_id})",
    )
    resources = primary_resources(result.data)
    if not resources or not isinstance(resources[0].attributes, BiographyAttributes):
        return None
    attrs = resources[0].attributes
    if not attrs.text:
        return None
    return Biography(text=attrs.text, source=attrs.source or "TIDAL")

"""Denormalize JSON:API resources into domain entities.

A response carries primary resources plus side-loaded ``included`` fragments.
Relationships are resolved through a ``"type:id"`` lookup; a relationship
whose target was not side-loaded is skipped, never an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from tidal_cli.models import (
    Album,
    AlbumAttributes,
    Artist,
    ArtistAttributes,
    AudioFeatures,
    GenreAttributes,
    Mix,
    MixAttributes,
    Playlist,
    PlaylistAttributes,
    Resource,
    ResourceIdentifier,
    Track,
    TrackAttributes,
)

UNKNOWN = "Unknown"
UNKNOWN_SENTINEL = "UNKNOWN"

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
_YEAR_RE = re.compile(r"^(\d{4})")

IncludedMap = Dict[str, Resource]


@dataclass(frozen=True)
class ResolvedMeta:
    artist_name: Optional[str] = None
    album_title: Optional[str] = None
    release_date: Optional[str] = None
    genres: List[str] = field(default_factory=list)


def as_resource(item: Union[Resource, Mapping[str, Any]]) -> Resource:
    return item if isinstance(item, Resource) else Resource.from_dict(item)


def build_included_map(included: Iterable[Union[Resource, Mapping[str, Any]]]) -> IncludedMap:
    lookup: IncludedMap = {}
    for item in included:
        resource = as_resource(item)
        lookup[resource.key] = resource
    return lookup


def primary_resources(document: Optional[Mapping[str, Any]]) -> List[Resource]:
    data = (document or {}).get("data")
    if data is None:
        return []
    if isinstance(data, dict):
        data = [data]
    return [Resource.from_dict(item) for item in data]


def included_map_of(document: Optional[Mapping[str, Any]]) -> IncludedMap:
    return build_included_map((document or {}).get("included") or [])


def parse_duration(value: Optional[str]) -> int:
    """Parse an ISO-8601 ``PT#H#M#S`` duration into whole seconds; 0 when unparseable."""
    if not value:
        return 0
    match = _DURATION_RE.fullmatch(value.strip())
    if not match:
        return 0
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_key(key: Optional[str], scale: Optional[str]) -> Optional[str]:
    """``"CSharp"`` + ``"MINOR"`` -> ``"C# minor"``. Only the first ``Sharp`` is replaced."""
    if not key or key == UNKNOWN_SENTINEL:
        return None
    readable = key.replace("Sharp", "#", 1)
    if not scale or scale == UNKNOWN_SENTINEL:
        return readable
    return f"{readable} {scale.lower()}"


def release_year(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).year
    except ValueError:
        match = _YEAR_RE.match(value)
        return int(match.group(1)) if match else None


def _first_artist_name(resource: Resource, included_map: IncludedMap) -> Optional[str]:
    for identifier in resource.related("artists")[:1]:
        artist = included_map.get(identifier.key)
        if artist is not None and isinstance(artist.attributes, ArtistAttributes):
            return artist.attributes.name
    return None


def resolve_genre_names(identifiers: Iterable[ResourceIdentifier], included_map: IncludedMap) -> List[str]:
    names: List[str] = []
    for identifier in identifiers:
        genre = included_map.get(f"genres:{identifier.id}")
        if genre is not None and isinstance(genre.attributes, GenreAttributes) and genre.attributes.genre_name:
            names.append(genre.attributes.genre_name)
    return names


def resolve_track_meta(track: Resource, included_map: IncludedMap) -> ResolvedMeta:
    album_title: Optional[str] = None
    release_date: Optional[str] = None
    for identifier in track.related("albums")[:1]:
        album = included_map.get(identifier.key)
        if album is not None and isinstance(album.attributes, AlbumAttributes):
            album_title = album.attributes.title
            release_date = album.attributes.release_date

    return ResolvedMeta(
        artist_name=_first_artist_name(track, included_map),
        album_title=album_title,
        release_date=release_date,
        genres=resolve_genre_names(track.related("genres"), included_map),
    )


def map_track_resource(track: Resource, meta: Optional[ResolvedMeta] = None) -> Track:
    meta = meta or ResolvedMeta()
    attrs = track.attributes if isinstance(track.attributes, TrackAttributes) else TrackAttributes()

    title = attrs.title or UNKNOWN
    if attrs.version:
        title = f"{title} ({attrs.version})"

    year = release_year(meta.release_date) if meta.release_date else release_year(attrs.created_at)

    return Track(
        id=int(track.id),
        title=title,
        artist=meta.artist_name or UNKNOWN,
        album=meta.album_title or UNKNOWN,
        duration=parse_duration(attrs.duration),
        release_year=year,
        popularity=attrs.popularity,
        genres=list(meta.genres),
        mood=list(attrs.tone_tags),
        audio_features=AudioFeatures(bpm=attrs.bpm, key=format_key(attrs.key, attrs.key_scale)),
    )


def map_album_resource(album: Resource, included_map: IncludedMap) -> Album:
    attrs = album.attributes if isinstance(album.attributes, AlbumAttributes) else AlbumAttributes()
    return Album(
        id=album.id,
        title=attrs.title or UNKNOWN,
        artist=_first_artist_name(album, included_map) or UNKNOWN,
        release_date=attrs.release_date,
        release_year=release_year(attrs.release_date),
        track_count=attrs.number_of_items,
    )


def map_artist_resource(artist: Resource) -> Artist:
    attrs = artist.attributes if isinstance(artist.attributes, ArtistAttributes) else ArtistAttributes()
    return Artist(id=int(artist.id), name=attrs.name or UNKNOWN, picture=attrs.picture)


def map_playlist_resource(playlist: Resource) -> Playlist:
    attrs = playlist.attributes if isinstance(playlist.attributes, PlaylistAttributes) else PlaylistAttributes()
    return Playlist(id=playlist.id, title=attrs.name or UNKNOWN, description=attrs.description or "")


def map_mix_resource(mix: Resource) -> Mix:
    attrs = mix.attributes if isinstance(mix.attributes, MixAttributes) else MixAttributes()
    return Mix(id=mix.id, title=attrs.title or UNKNOWN, sub_title=attrs.sub_title or "")

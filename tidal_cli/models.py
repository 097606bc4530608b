from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union


@dataclass(frozen=True)
class ResourceIdentifier:
    id: str
    type: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ResourceIdentifier":
        return cls(id=str(payload.get("id", "")), type=str(payload.get("type", "")))

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"


# ---- attribute variants, one per resource kind ----


@dataclass(frozen=True)
class TrackAttributes:
    title: Optional[str] = None
    version: Optional[str] = None
    duration: Optional[str] = None
    created_at: Optional[str] = None
    popularity: Optional[float] = None
    bpm: Optional[float] = None
    key: Optional[str] = None
    key_scale: Optional[str] = None
    tone_tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TrackAttributes":
        return cls(
            title=payload.get("title"),
            version=payload.get("version"),
            duration=payload.get("duration"),
            created_at=payload.get("createdAt"),
            popularity=payload.get("popularity"),
            bpm=payload.get("bpm"),
            key=payload.get("key"),
            key_scale=payload.get("keyScale"),
            tone_tags=list(payload.get("toneTags") or []),
        )


@dataclass(frozen=True)
class ArtistAttributes:
    name: Optional[str] = None
    popularity: Optional[float] = None
    picture: Optional[str] = None
    external_links: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ArtistAttributes":
        pictures = payload.get("picture") or []
        picture = pictures[0].get("url") if pictures and isinstance(pictures[0], dict) else None
        return cls(
            name=payload.get("name"),
            popularity=payload.get("popularity"),
            picture=picture,
            external_links=list(payload.get("externalLinks") or []),
        )


@dataclass(frozen=True)
class AlbumAttributes:
    title: Optional[str] = None
    release_date: Optional[str] = None
    number_of_items: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AlbumAttributes":
        return cls(
            title=payload.get("title"),
            release_date=payload.get("releaseDate"),
            number_of_items=payload.get("numberOfItems"),
        )


@dataclass(frozen=True)
class PlaylistAttributes:
    name: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PlaylistAttributes":
        return cls(name=payload.get("name"), description=payload.get("description"))


@dataclass(frozen=True)
class GenreAttributes:
    genre_name: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GenreAttributes":
        return cls(genre_name=payload.get("genreName"))


@dataclass(frozen=True)
class MixAttributes:
    title: Optional[str] = None
    sub_title: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MixAttributes":
        return cls(title=payload.get("title"), sub_title=payload.get("subTitle"))


@dataclass(frozen=True)
class LyricsAttributes:
    text: Optional[str] = None
    provider: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LyricsAttributes":
        provider = payload.get("provider")
        if isinstance(provider, dict):
            provider = provider.get("name")
        return cls(text=payload.get("text"), provider=provider)


@dataclass(frozen=True)
class BiographyAttributes:
    text: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BiographyAttributes":
        return cls(text=payload.get("text"), source=payload.get("source"))


Attributes = Union[
    TrackAttributes,
    ArtistAttributes,
    AlbumAttributes,
    PlaylistAttributes,
    GenreAttributes,
    MixAttributes,
    LyricsAttributes,
    BiographyAttributes,
    Dict[str, Any],
]

ATTRIBUTE_TYPES = {
    "tracks": TrackAttributes,
    "artists": ArtistAttributes,
    "albums": AlbumAttributes,
    "playlists": PlaylistAttributes,
    "genres": GenreAttributes,
    "mixes": MixAttributes,
    "lyrics": LyricsAttributes,
    "artistBiographies": BiographyAttributes,
}


def parse_attributes(resource_type: str, payload: Mapping[str, Any] | None) -> Attributes:
    """Parse raw attributes into the variant for ``resource_type``.

    Unknown resource kinds keep their attributes as a plain dict.
    """
    variant = ATTRIBUTE_TYPES.get(resource_type)
    if variant is None:
        return dict(payload or {})
    return variant.from_dict(payload or {})


@dataclass(frozen=True)
class Resource:
    """A primary or side-loaded JSON:API resource object."""

    id: str
    type: str
    attributes: Attributes
    relationships: Dict[str, List[ResourceIdentifier]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Resource":
        resource_type = str(payload.get("type", ""))
        relationships: Dict[str, List[ResourceIdentifier]] = {}
        for name, relationship in (payload.get("relationships") or {}).items():
            data = (relationship or {}).get("data")
            if data is None:
                relationships[name] = []
            elif isinstance(data, list):
                relationships[name] = [ResourceIdentifier.from_dict(item) for item in data]
            else:
                relationships[name] = [ResourceIdentifier.from_dict(data)]
        return cls(
            id=str(payload.get("id", "")),
            type=resource_type,
            attributes=parse_attributes(resource_type, payload.get("attributes")),
            relationships=relationships,
        )

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"

    def related(self, name: str) -> List[ResourceIdentifier]:
        return self.relationships.get(name, [])


# ---- denormalized domain entities ----


@dataclass(frozen=True)
class AudioFeatures:
    bpm: Optional[float] = None
    key: Optional[str] = None


@dataclass(frozen=True)
class Track:
    id: int
    title: str
    artist: str
    album: str
    duration: int
    release_year: Optional[int] = None
    popularity: Optional[float] = None
    genres: List[str] = field(default_factory=list)
    mood: List[str] = field(default_factory=list)
    audio_features: AudioFeatures = field(default_factory=AudioFeatures)


@dataclass(frozen=True)
class Artist:
    id: int
    name: str
    picture: Optional[str] = None


@dataclass(frozen=True)
class ArtistDetails:
    id: str
    name: str
    popularity: Optional[float] = None
    external_links: List[Dict[str, Any]] = field(default_factory=list)
    picture: Optional[str] = None


@dataclass(frozen=True)
class Album:
    id: str
    title: str
    artist: str
    release_date: Optional[str] = None
    release_year: Optional[int] = None
    track_count: Optional[int] = None


@dataclass(frozen=True)
class Playlist:
    id: str
    title: str
    description: str = ""


@dataclass(frozen=True)
class Mix:
    id: str
    title: str
    sub_title: str = ""


@dataclass(frozen=True)
class Lyrics:
    track_id: str
    text: str
    provider: Optional[str] = None


@dataclass(frozen=True)
class Biography:
    text: str
    source: str = "TIDAL"


@dataclass(frozen=True)
class User:
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None

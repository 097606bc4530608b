from __future__ import annotations

import re
from dataclasses import dataclass

DESKTOP_BASE = "https://desktop.tidal.com"

_KINDS = "track|album|playlist|mix|artist"
_URL_RE = re.compile(rf"(?:https?://)?(?:listen\.|www\.)?tidal\.com/(?:browse/)?({_KINDS})/([^\s?#]+)", re.IGNORECASE)
_SHORT_RE = re.compile(rf"^({_KINDS})/(\S+)$", re.IGNORECASE)
_UUID_PREFIX_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-")


@dataclass(frozen=True)
class PlayableResource:
    type: str
    id: str

    @property
    def desktop_url(self) -> str:
        return f"{DESKTOP_BASE}/{self.type}/{self.id}"


def parse_resource(text: str) -> PlayableResource:
    """Accept a TIDAL URL, a ``type/id`` pair or a bare id.

    A bare id that looks like a UUID is a playlist; any other bare id is a track.
    """
    value = text.strip()
    match = _URL_RE.search(value) or _SHORT_RE.match(value)
    if match:
        return PlayableResource(type=match.group(1).lower(), id=match.group(2))
    kind = "playlist" if _UUID_PREFIX_RE.match(value) else "track"
    return PlayableResource(type=kind, id=value)

from __future__ import annotations

from typing import List

from tidal_cli.catalog.client import TidalSession
from tidal_cli.catalog.pagination import document_identifiers
from tidal_cli.catalog.resolver import included_map_of, map_mix_resource
from tidal_cli.catalog.retry import with_retry
from tidal_cli.models import Mix, Resource


async def fetch_mixes(session: TidalSession, relationship: str, label: str) -> List[Mix]:
    result = await with_retry(
        lambda: session.client.get(
            f"/userRecommendations/{session.user_id}/relationships/{relationship}",
            params={"include": [relationship]},
        ),
        label=label,
    )
    included_map = included_map_of(result.data)
    raw = (result.data or {}).get("data") or []
    if isinstance(raw, dict):
        raw = [raw]
    mixes: List[Mix] = []
    for item, identifier in zip(raw, document_identifiers(result.data)):
        # Side-loaded attributes win over the (usually bare) identifier entry.
        resource = included_map.get(identifier.key) or Resource.from_dict(item)
        mixes.append(map_mix_resource(resource))
    return mixes


async def get_discovery_mixes(session: TidalSession) -> List[Mix]:
    return await fetch_mixes(session, "discoveryMixes", "getDiscoveryMixes")


async def get_my_mixes(session: TidalSession) -> List[Mix]:
    return await fetch_mixes(session, "myMixes", "getMyMixes")


async def get_new_arrival_mixes(session: TidalSession) -> List[Mix]:
    return await fetch_mixes(session, "newArrivalMixes", "getNewArrivalMixes")

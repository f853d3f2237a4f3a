"""
Provider Ranking Algorithm
==========================

Turns resolved candidates into a shortlist for one request:

  1. Distance  -- haversine distance from the request's job site
  2. Radius    -- keep a candidate only if distance <= its service radius
                  (inclusive: a provider exactly on the edge is eligible)
  3. Order     -- nearest first

The ordering is total: equal distances are broken by provider id, so the
same inputs always produce the same shortlist whatever order the
candidates arrive in.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable

from homefix.services.candidateResolver import ProviderCandidate
from homefix.services.geoService import haversine_distance


@dataclass(frozen=True)
class RankedProvider:
    """An eligible candidate with its distance from the request."""

    candidate: ProviderCandidate
    distance_km: float

    @property
    def provider_id(self) -> uuid.UUID:
        return self.candidate.provider_id

    @property
    def provider_name(self) -> str:
        return self.candidate.provider_name


def _sort_key(ranked: RankedProvider) -> tuple[float, str]:
    return (ranked.distance_km, str(ranked.provider_id))


def rank_candidates(
    candidates: Iterable[ProviderCandidate],
    request_lat: float,
    request_lon: float,
) -> list[RankedProvider]:
    """Filter candidates by service radius and rank them by distance.

    Args:
        candidates: Candidates from the resolver.
        request_lat: Latitude of the request's job site.
        request_lon: Longitude of the request's job site.

    Returns:
        Eligible candidates, nearest first, ties broken by provider id.
        Empty if none are within range.
    """
    eligible: list[RankedProvider] = []

    for candidate in candidates:
        distance = haversine_distance(
            request_lat,
            request_lon,
            candidate.latitude,
            candidate.longitude,
        )
        if distance <= candidate.service_radius_km:
            eligible.append(RankedProvider(candidate=candidate, distance_km=distance))

    eligible.sort(key=_sort_key)
    return eligible

"""Compatibility scoring and candidate ranking.

Two scoring policies exist and are used by different screens:

- WEIGHTED: interests x10 plus preferred destinations x15, capped at 100
  (explore page).
- SIMPLE_OVERLAP: raw count of shared interests, unbounded
  (potential matches list).

Everything here is pure; no store access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from travelmatch.models import UserProfile

INTEREST_WEIGHT = 10
DESTINATION_WEIGHT = 15
MAX_SCORE = 100


def weighted_compatibility(viewer: UserProfile, candidate: UserProfile) -> int:
    """Score 0-100 from shared interests and shared preferred destinations.

    Returns 0 when either side has no interests. Destination weighting only
    counts tags both sides listed.
    """
    if not viewer.interests or not candidate.interests:
        return 0
    common_interests = viewer.interests & candidate.interests
    common_destinations = viewer.preferred_destinations & candidate.preferred_destinations
    raw = INTEREST_WEIGHT * len(common_interests) + DESTINATION_WEIGHT * len(common_destinations)
    return min(MAX_SCORE, raw)


def simple_overlap_count(viewer: UserProfile, candidate: UserProfile) -> int:
    """Number of shared interests."""
    return len(viewer.interests & candidate.interests)


class ScoringPolicy(Enum):
    """Named scoring strategies, selected by call site."""
    WEIGHTED = "weighted"
    SIMPLE_OVERLAP = "simple_overlap"

    @property
    def scorer(self) -> Callable[[UserProfile, UserProfile], int]:
        return _SCORERS[self]


_SCORERS: dict[ScoringPolicy, Callable[[UserProfile, UserProfile], int]] = {
    ScoringPolicy.WEIGHTED: weighted_compatibility,
    ScoringPolicy.SIMPLE_OVERLAP: simple_overlap_count,
}


@dataclass
class RankedCandidate:
    """A candidate profile with its score for the viewer."""
    profile: UserProfile
    score: int
    common_interests: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.profile.to_dict()
        data["id"] = self.profile.id
        data["score"] = self.score
        data["commonInterests"] = self.common_interests
        return data


def rank_candidates(
    viewer: UserProfile,
    candidate_pool: Iterable[UserProfile],
    exclude_ids: Iterable[str] = (),
    policy: ScoringPolicy = ScoringPolicy.WEIGHTED,
) -> list[RankedCandidate]:
    """Drop excluded candidates, score the rest and sort by score descending.

    The sort is stable: equal scores keep their fetch order.
    """
    excluded = set(exclude_ids)
    scorer = policy.scorer
    ranked = [
        RankedCandidate(
            profile=candidate,
            score=scorer(viewer, candidate),
            common_interests=sorted(viewer.interests & candidate.interests),
        )
        for candidate in candidate_pool
        if candidate.id not in excluded
    ]
    ranked.sort(key=lambda r: r.score, reverse=True)
    return ranked

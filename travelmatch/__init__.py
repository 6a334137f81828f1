"""Travel companion matching package."""

from .models import Destination, LikeResult, MatchRecord, UserProfile
from .services import (
    MatchingService,
    ProfileService,
    RecommendationService,
    rank_candidates,
    simple_overlap_count,
    weighted_compatibility,
)

__all__ = [
    "UserProfile",
    "Destination",
    "MatchRecord",
    "LikeResult",
    "MatchingService",
    "ProfileService",
    "RecommendationService",
    "weighted_compatibility",
    "simple_overlap_count",
    "rank_candidates",
]

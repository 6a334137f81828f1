"""Service layer - Business logic modules.

Each service module has a clear interface and can be developed/tested independently.
"""

from .store_service import (
    BaseDocumentStore,
    DocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    RemoteOperationError,
    SQLiteDocumentStore,
    StoreServiceError,
    ValidationError,
)
from .scoring import ScoringPolicy, rank_candidates, simple_overlap_count, weighted_compatibility
from .matching_service import MatchingService, canonical_pair_id
from .profile_service import ProfileService
from .recommendation_service import RecommendationService

__all__ = [
    "BaseDocumentStore",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "StoreServiceError",
    "NotFoundError",
    "RemoteOperationError",
    "ValidationError",
    "ScoringPolicy",
    "weighted_compatibility",
    "simple_overlap_count",
    "rank_candidates",
    "canonical_pair_id",
    "MatchingService",
    "ProfileService",
    "RecommendationService",
]

"""Matching Service - Explore ranking and mutual-match detection.

This module handles:
- Ranking discoverable profiles for the explore page and the potential-matches list
- Recording likes and dislikes
- Detecting reciprocity and creating exactly one match record per pair

Interface Contract:
- explore(viewer_id, page) -> ExplorePage
- potential_matches(viewer_id) -> list[RankedCandidate]
- apply_like(liker_id, liked_id) -> LikeResult
- apply_dislike(liker_id, disliked_id) -> None
- get_user_matches(user_id) -> list[UserProfile]
- Malformed input raises ValidationError before any store call
- Backend failures raise RemoteOperationError; nothing is retried
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from config import EXPLORE_FETCH_LIMIT, USERS_PER_PAGE
from travelmatch.models import LikeResult, MatchRecord, UserProfile
from travelmatch.services.profile_service import USER_ID_SEPARATOR, validate_user_id
from travelmatch.services.scoring import RankedCandidate, ScoringPolicy, rank_candidates
from travelmatch.services.store_service import (
    MATCHES,
    USERS,
    ArrayUnion,
    NotFoundError,
    Predicate,
    RemoteOperationError,
    StoreServiceError,
    Transaction,
    ValidationError,
)

logger = logging.getLogger(__name__)


def canonical_pair_id(user_a: str, user_b: str) -> str:
    """Deterministic id for an unordered pair: smaller id first.

    User ids never contain the separator, so distinct pairs never share an id.
    """
    first, second = sorted((user_a, user_b))
    return f"{first}{USER_ID_SEPARATOR}{second}"


def _validate_pair(actor_id: str, target_id: str) -> None:
    if not actor_id or not target_id:
        raise ValidationError("Both user ids are required")
    validate_user_id(actor_id)
    validate_user_id(target_id)
    if actor_id == target_id:
        raise ValidationError("Users cannot like or dislike themselves")


@dataclass
class ExplorePage:
    """Ranked explore candidates visible up to the requested page."""
    candidates: list[RankedCandidate] = field(default_factory=list)
    page: int = 1
    has_more: bool = False
    total_found: int = 0

    def to_dict(self) -> dict:
        return {
            "candidates": [c.to_dict() for c in self.candidates],
            "page": self.page,
            "hasMore": self.has_more,
            "totalFound": self.total_found,
        }


class MatchingService:
    """Service for candidate ranking and the like/dislike flow."""

    def __init__(self, store=None, *, fetch_limit: int = EXPLORE_FETCH_LIMIT, page_size: int = USERS_PER_PAGE):
        """Initialize with optional store dependency.

        Args:
            store: Document store. If None, uses the configured default.
            fetch_limit: Discoverable profiles fetched per explore request
            page_size: Candidates added per explore page
        """
        self._store = store
        self.fetch_limit = fetch_limit
        self.page_size = page_size

    @property
    def store(self):
        """Lazy load the document store."""
        if self._store is None:
            from travelmatch.services.store_service import DocumentStore
            self._store = DocumentStore.get_instance()
        return self._store

    # ------------------------------------------------------------------
    # Candidate ranking
    # ------------------------------------------------------------------

    def _load_viewer(self, viewer_id: str) -> UserProfile:
        document = self.store.get_document(USERS, viewer_id)
        if document is None:
            raise NotFoundError("User not found")
        return UserProfile.from_dict(document)

    def explore(self, viewer_id: str, page: int = 1) -> ExplorePage:
        """Rank completed profiles for the explore page.

        Uses the weighted policy. The store pre-filters on profileCompleted
        and excludes the viewer; the viewer's liked, disliked and matched ids
        are removed here.

        Raises:
            NotFoundError: If the viewer has no profile
            RemoteOperationError: If the store fails
        """
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        viewer = self._load_viewer(viewer_id)
        documents = self.store.query_documents(
            USERS,
            Predicate("profileCompleted", "==", True),
            Predicate("userId", "!=", viewer_id),
            limit=self.fetch_limit,
        )
        pool = [UserProfile.from_dict(doc) for doc in documents]
        ranked = rank_candidates(viewer, pool, viewer.exclusion_ids(), ScoringPolicy.WEIGHTED)

        visible = page * self.page_size
        logger.info("[explore] viewer=%s pool=%d ranked=%d page=%d", viewer_id, len(pool), len(ranked), page)
        return ExplorePage(
            candidates=ranked[:visible],
            page=page,
            has_more=len(ranked) > visible,
            total_found=len(ranked),
        )

    def potential_matches(self, viewer_id: str) -> list[RankedCandidate]:
        """Rank every other user by raw shared-interest count."""
        viewer = self._load_viewer(viewer_id)
        pool = [
            UserProfile.from_dict(doc)
            for doc in self.store.query_documents(USERS)
            if doc["id"] != viewer_id
        ]
        ranked = rank_candidates(viewer, pool, viewer.exclusion_ids(), ScoringPolicy.SIMPLE_OVERLAP)
        logger.info("[potential] viewer=%s ranked=%d", viewer_id, len(ranked))
        return ranked

    # ------------------------------------------------------------------
    # Like / dislike
    # ------------------------------------------------------------------

    def apply_like(self, liker_id: str, liked_id: str) -> LikeResult:
        """Record a like and create the match if the other user already liked back.

        The like, the reciprocity check and the match writes commit as one
        transaction, so two users liking each other at the same time still
        produce exactly one match record.

        Raises:
            ValidationError: If the ids are empty or equal
            NotFoundError: If the liker has no profile
            RemoteOperationError: If the store fails
        """
        _validate_pair(liker_id, liked_id)

        def like(txn: Transaction) -> LikeResult:
            liked_doc = txn.get(USERS, liked_id)
            txn.update(USERS, liker_id, {"likedUsers": ArrayUnion([liked_id])})

            # A deleted counterpart is simply "no match"
            if liked_doc is None or liker_id not in (liked_doc.get("likedUsers") or []):
                return LikeResult(is_match=False)

            match_id = canonical_pair_id(liker_id, liked_id)
            txn.update(USERS, liker_id, {"matches": ArrayUnion([liked_id])})
            txn.update(USERS, liked_id, {"matches": ArrayUnion([liker_id])})
            if txn.get(MATCHES, match_id) is None:
                record = MatchRecord(
                    id=match_id,
                    users=[liker_id, liked_id],
                    created_at=datetime.now(timezone.utc).isoformat(),
                )
                txn.set(MATCHES, match_id, record.to_dict())
            return LikeResult(is_match=True, match_id=match_id)

        result = self._run(like)
        logger.info("[like] liker=%s liked=%s match=%s", liker_id, liked_id, result.is_match)
        return result

    def apply_dislike(self, liker_id: str, disliked_id: str) -> None:
        """Record a dislike. A prior like of the same user is left in place.

        Raises:
            ValidationError: If the ids are empty or equal
            NotFoundError: If the acting user has no profile
            RemoteOperationError: If the store fails
        """
        _validate_pair(liker_id, disliked_id)
        self._run(lambda txn: txn.update(USERS, liker_id, {"dislikedUsers": ArrayUnion([disliked_id])}))
        logger.info("[dislike] user=%s disliked=%s", liker_id, disliked_id)

    def _run(self, fn):
        try:
            return self.store.run_transaction(fn)
        except (StoreServiceError, ValidationError):
            raise
        except Exception as e:
            raise RemoteOperationError(f"Store operation failed: {e}") from e

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def get_user_matches(self, user_id: str) -> list[UserProfile]:
        """Profiles of everyone the user matched with, skipping deleted accounts."""
        user = self._load_viewer(user_id)
        matched = []
        for match_user_id in sorted(user.matches):
            document = self.store.get_document(USERS, match_user_id)
            if document is not None:
                matched.append(UserProfile.from_dict(document))
        return matched

    def get_match(self, match_id: str) -> MatchRecord:
        """Fetch a match record by its canonical id.

        Raises:
            NotFoundError: If no such match exists
        """
        document = self.store.get_document(MATCHES, match_id)
        if document is None:
            raise NotFoundError("Match not found")
        return MatchRecord.from_dict(document)

"""Profile Service - User profile reads, registration and edits.

This module handles:
- Reading a profile for display
- Creating the initial profile document at registration
- Applying profile edits and recomputing the completed flag
- Searching users by name or interest

Interface Contract:
- get_profile(user_id) -> UserProfile
- create_profile(user_id, display_name, ...) -> UserProfile
- update_profile(user_id, fields) -> UserProfile
- search_users(term) -> list[UserProfile]
- Missing profiles raise NotFoundError; bad edits raise ValidationError
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from collections.abc import Iterable
from typing import Any

from travelmatch.models import UserProfile
from travelmatch.services.store_service import USERS, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Editable field name -> document key
EDITABLE_FIELDS = {
    "display_name": "displayName",
    "bio": "bio",
    "interests": "interests",
    "preferred_destinations": "preferredDestinations",
    "location": "location",
    "photo_url": "photoURL",
}

# Only the like/dislike flow may touch these
PROTECTED_FIELDS = {"likedUsers", "dislikedUsers", "matches", "liked_users", "disliked_users"}

_TAG_FIELDS = {"interests", "preferredDestinations"}

# Match ids join two user ids with this, so it may not appear inside one
USER_ID_SEPARATOR = "_"


def validate_user_id(user_id: Any) -> str:
    """Return the stripped id, or raise ValidationError if it cannot be stored."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("User id is required")
    if USER_ID_SEPARATOR in user_id:
        raise ValidationError(f"User id may not contain '{USER_ID_SEPARATOR}'")
    return user_id.strip()


def _require_text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value


def _normalize_tags(values: Any, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str) or not isinstance(values, Iterable):
        raise ValidationError(f"{field_name} must be a list of tags")
    tags = []
    for value in values:
        tag = str(value).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return sorted(tags)


def is_profile_complete(profile: UserProfile) -> bool:
    """A profile is discoverable once it has a name, an interest and a destination."""
    return bool(profile.display_name.strip() and profile.interests and profile.preferred_destinations)


class ProfileService:
    """Service for profile management."""

    def __init__(self, store=None):
        self._store = store

    @property
    def store(self):
        """Lazy load the document store."""
        if self._store is None:
            from travelmatch.services.store_service import DocumentStore
            self._store = DocumentStore.get_instance()
        return self._store

    def get_profile(self, user_id: str) -> UserProfile:
        """Read a user's profile.

        Raises:
            NotFoundError: If the user does not exist
            RemoteOperationError: If the store fails
        """
        document = self.store.get_document(USERS, user_id)
        if document is None:
            raise NotFoundError("User not found")
        return UserProfile.from_dict(document)

    def create_profile(
        self,
        user_id: str,
        display_name: str,
        *,
        bio: str = "",
        interests: Iterable[str] = (),
        preferred_destinations: Iterable[str] = (),
        location: str = "",
    ) -> UserProfile:
        """Create the profile document for a newly registered user.

        Raises:
            ValidationError: If the id or a field is malformed, or the id is already registered
        """
        user_id = validate_user_id(user_id)
        profile = UserProfile(
            id=user_id,
            display_name=_require_text(display_name, "displayName").strip(),
            bio=_require_text(bio, "bio"),
            interests=set(_normalize_tags(interests, "interests")),
            preferred_destinations=set(_normalize_tags(preferred_destinations, "preferredDestinations")),
            location=_require_text(location, "location"),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        profile.profile_completed = is_profile_complete(profile)

        def register(txn):
            if txn.get(USERS, user_id) is not None:
                raise ValidationError("User already exists")
            txn.set(USERS, user_id, profile.to_dict())

        self.store.run_transaction(register)
        logger.info("[profile] created user=%s completed=%s", user_id, profile.profile_completed)
        return profile

    def update_profile(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        """Apply profile edits.

        Accepts snake_case or camelCase keys for the editable fields.

        Raises:
            ValidationError: If a field is unknown or protected
            NotFoundError: If the user does not exist
        """
        if not isinstance(fields, dict):
            raise ValidationError("Profile edits must be an object")
        partial: dict[str, Any] = {}
        camel_keys = set(EDITABLE_FIELDS.values())
        for key, value in fields.items():
            if key in PROTECTED_FIELDS:
                raise ValidationError(f"{key} cannot be edited directly")
            doc_key = EDITABLE_FIELDS.get(key) or (key if key in camel_keys else None)
            if doc_key is None:
                raise ValidationError(f"Unknown profile field: {key}")
            if doc_key in _TAG_FIELDS:
                partial[doc_key] = _normalize_tags(value, doc_key)
            else:
                partial[doc_key] = _require_text(value, doc_key)

        def edit(txn):
            txn.update(USERS, user_id, partial)
            profile = UserProfile.from_dict(txn.get(USERS, user_id))
            profile.profile_completed = is_profile_complete(profile)
            txn.update(USERS, user_id, {"profileCompleted": profile.profile_completed})
            return profile

        profile = self.store.run_transaction(edit)
        logger.info("[profile] updated user=%s fields=%s", user_id, sorted(partial))
        return profile

    def update_interests(self, user_id: str, interests: Iterable[str]) -> UserProfile:
        """Replace the user's interests."""
        return self.update_profile(user_id, {"interests": list(interests)})

    def search_users(self, term: str) -> list[UserProfile]:
        """Case-insensitive search on display name or any interest.

        A blank term matches every user that has a display name or an interest.
        """
        needle = (term or "").strip().lower()
        results = []
        for document in self.store.query_documents(USERS):
            profile = UserProfile.from_dict(document)
            if profile.display_name and needle in profile.display_name.lower():
                results.append(profile)
            elif any(needle in interest.lower() for interest in profile.interests):
                results.append(profile)
        return results

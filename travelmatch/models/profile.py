"""User profile data model.

Pure data structure with no business logic.
Document keys are camelCase to stay compatible with existing user documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Any, Iterable


def _as_set(values: Iterable[str] | None) -> set[str]:
    """Absent and empty collections mean the same thing."""
    if not values:
        return set()
    return {str(v) for v in values}


@dataclass
class UserProfile:
    """A traveler's profile plus their like/dislike/match relationships."""
    id: str
    display_name: str = ""
    bio: str = ""
    interests: set[str] = dataclass_field(default_factory=set)
    preferred_destinations: set[str] = dataclass_field(default_factory=set)
    liked_users: set[str] = dataclass_field(default_factory=set)
    disliked_users: set[str] = dataclass_field(default_factory=set)
    matches: set[str] = dataclass_field(default_factory=set)
    profile_completed: bool = False
    location: str = ""
    photo_url: str | None = None
    created_at: str = ""

    def exclusion_ids(self) -> set[str]:
        """Ids that must never be shown to this user again."""
        return self.liked_users | self.disliked_users | self.matches

    def to_dict(self) -> dict[str, Any]:
        """Convert to a store document (sets become sorted lists)."""
        return {
            "userId": self.id,
            "displayName": self.display_name,
            "bio": self.bio,
            "interests": sorted(self.interests),
            "preferredDestinations": sorted(self.preferred_destinations),
            "likedUsers": sorted(self.liked_users),
            "dislikedUsers": sorted(self.disliked_users),
            "matches": sorted(self.matches),
            "profileCompleted": self.profile_completed,
            "location": self.location,
            "photoURL": self.photo_url,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], doc_id: str | None = None) -> "UserProfile":
        """Create from a store document."""
        return cls(
            id=doc_id or data.get("id") or data.get("userId", ""),
            display_name=data.get("displayName") or "",
            bio=data.get("bio") or "",
            interests=_as_set(data.get("interests")),
            preferred_destinations=_as_set(data.get("preferredDestinations")),
            liked_users=_as_set(data.get("likedUsers")),
            disliked_users=_as_set(data.get("dislikedUsers")),
            matches=_as_set(data.get("matches")),
            profile_completed=bool(data.get("profileCompleted", False)),
            location=data.get("location") or "",
            photo_url=data.get("photoURL"),
            created_at=data.get("createdAt") or "",
        )

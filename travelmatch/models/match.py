"""Match data models.

Pure data structures for match records and like outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Any


@dataclass
class MatchRecord:
    """A mutual match between two users, keyed by the canonical pair id."""
    id: str
    users: list[str]
    created_at: str = ""
    messages: list[dict[str, Any]] = dataclass_field(default_factory=list)  # reserved, always empty

    def to_dict(self) -> dict[str, Any]:
        """Convert to a store document."""
        return {
            "users": self.users,
            "createdAt": self.created_at,
            "messages": self.messages,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], doc_id: str | None = None) -> "MatchRecord":
        """Create from a store document."""
        return cls(
            id=doc_id or data.get("id", ""),
            users=list(data.get("users") or []),
            created_at=data.get("createdAt") or "",
            messages=list(data.get("messages") or []),
        )


@dataclass
class LikeResult:
    """Outcome of a like action."""
    is_match: bool
    match_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"isMatch": self.is_match}
        if self.match_id is not None:
            data["matchId"] = self.match_id
        return data

"""Recommendation Service - Destination discovery.

This module handles:
- Fetching top-rated destinations
- Boosting destinations whose tags match the viewer's interests
- Keyword filtering from a free-text prompt ("hidden gems", "trending", ...)
- Map markers and destination creation

Interface Contract:
- top_destinations(limit) -> list[Destination]
- recommend(viewer, prompt, limit) -> list[ScoredDestination]
- map_markers() -> list[Destination]
- add_destination(fields) -> Destination
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from config import DESTINATION_LIMIT
from travelmatch.models import Coordinates, Destination, UserProfile
from travelmatch.services.store_service import ValidationError

logger = logging.getLogger(__name__)

DESTINATIONS = "destinations"

NEARBY_KEYWORDS = ("near", "nearby")
HIDDEN_GEM_KEYWORDS = ("hidden", "gem")
TRENDING_KEYWORDS = ("trending", "popular")


def _text_field(fields: Mapping[str, Any], key: str) -> str:
    value = fields.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


@dataclass
class ScoredDestination:
    """A destination with its relevance to the viewer's interests."""
    destination: Destination
    relevance_score: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = self.destination.to_dict()
        data["id"] = self.destination.id
        data["relevanceScore"] = self.relevance_score
        return data


def relevance_score(destination: Destination, interests: set[str]) -> int:
    """Count destination tags (lowercased) present in the interests."""
    return sum(1 for tag in destination.tags if tag.lower() in interests)


def filter_by_prompt(items: list[ScoredDestination], prompt: str) -> list[ScoredDestination]:
    """Apply the keyword rules of the recommendation prompt."""
    prompt_lower = (prompt or "").strip().lower()
    if not prompt_lower:
        return items

    if any(word in prompt_lower for word in NEARBY_KEYWORDS):
        return [i for i in items if "local" in i.destination.tags or i.destination.nearby]
    if any(word in prompt_lower for word in HIDDEN_GEM_KEYWORDS):
        return [i for i in items if "hidden gem" in i.destination.tags]
    if any(word in prompt_lower for word in TRENDING_KEYWORDS):
        return [i for i in items if i.destination.trending]

    def matches(dest: Destination) -> bool:
        return (
            prompt_lower in dest.name.lower()
            or prompt_lower in dest.description.lower()
            or prompt_lower in dest.country.lower()
            or any(prompt_lower in tag.lower() for tag in dest.tags)
        )

    return [i for i in items if matches(i.destination)]


class RecommendationService:
    """Service for destination recommendations."""

    def __init__(self, store=None):
        self._store = store

    @property
    def store(self):
        """Lazy load the document store."""
        if self._store is None:
            from travelmatch.services.store_service import DocumentStore
            self._store = DocumentStore.get_instance()
        return self._store

    def top_destinations(self, limit: int = DESTINATION_LIMIT) -> list[Destination]:
        """Highest-rated destinations first."""
        documents = self.store.query_documents(
            DESTINATIONS, order_by="rating", descending=True, limit=limit
        )
        return [Destination.from_dict(doc) for doc in documents]

    def recommend(
        self,
        viewer: UserProfile | None = None,
        prompt: str = "",
        limit: int = DESTINATION_LIMIT,
    ) -> list[ScoredDestination]:
        """Top destinations, boosted by the viewer's interests and filtered by prompt."""
        items = [ScoredDestination(destination=d) for d in self.top_destinations(limit)]

        if viewer is not None and viewer.interests:
            for item in items:
                item.relevance_score = relevance_score(item.destination, viewer.interests)
            items.sort(key=lambda i: i.relevance_score, reverse=True)

        filtered = filter_by_prompt(items, prompt)
        logger.info("[recommend] prompt=%r fetched=%d shown=%d", prompt, len(items), len(filtered))
        return filtered

    def map_markers(self) -> list[Destination]:
        """Destinations that can be placed on the map."""
        destinations = [Destination.from_dict(doc) for doc in self.store.query_documents(DESTINATIONS)]
        return [d for d in destinations if d.coordinates is not None]

    def add_destination(self, fields: dict[str, Any]) -> Destination:
        """Create a destination under a generated id.

        Raises:
            ValidationError: If name is missing or rating/coordinates are malformed
        """
        if not isinstance(fields, Mapping):
            raise ValidationError("Destination data must be an object")
        name = _text_field(fields, "name").strip()
        if not name:
            raise ValidationError("Destination name is required")
        raw_coordinates = fields.get("coordinates")
        if raw_coordinates is not None and not isinstance(raw_coordinates, Mapping):
            raise ValidationError("coordinates must be an object with lat and lng")
        tags = fields.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValidationError("tags must be a list of strings")
        try:
            rating = float(fields.get("rating") or 0.0)
            coordinates = Coordinates.from_dict(raw_coordinates)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid destination data: {e}") from e

        destination = Destination(
            id="",
            name=name,
            country=_text_field(fields, "country"),
            description=_text_field(fields, "description"),
            coordinates=coordinates,
            tags=list(tags),
            rating=rating,
            trending=bool(fields.get("trending", False)),
            nearby=bool(fields.get("isNearby", False)),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        destination.id = self.store.add_document(DESTINATIONS, destination.to_dict())
        logger.info("[destination] added id=%s name=%s", destination.id, name)
        return destination

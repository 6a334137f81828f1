"""Destination data model."""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Any


@dataclass
class Coordinates:
    """Latitude / longitude pair."""
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Coordinates | None":
        if not data or data.get("lat") is None or data.get("lng") is None:
            return None
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass
class Destination:
    """A travel destination shown in recommendations and on the map."""
    id: str
    name: str
    country: str = ""
    description: str = ""
    coordinates: Coordinates | None = None
    tags: list[str] = dataclass_field(default_factory=list)
    rating: float = 0.0
    trending: bool = False
    nearby: bool = False
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to a store document."""
        return {
            "name": self.name,
            "country": self.country,
            "description": self.description,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "tags": self.tags,
            "rating": self.rating,
            "trending": self.trending,
            "isNearby": self.nearby,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], doc_id: str | None = None) -> "Destination":
        """Create from a store document."""
        return cls(
            id=doc_id or data.get("id", ""),
            name=data.get("name") or "",
            country=data.get("country") or "",
            description=data.get("description") or "",
            coordinates=Coordinates.from_dict(data.get("coordinates")),
            tags=list(data.get("tags") or []),
            rating=float(data.get("rating") or 0.0),
            trending=bool(data.get("trending", False)),
            nearby=bool(data.get("isNearby", False)),
            created_at=data.get("createdAt") or "",
        )

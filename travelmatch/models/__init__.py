"""Data models - Pure data structures with no business logic."""

from .destination import Coordinates, Destination
from .match import LikeResult, MatchRecord
from .profile import UserProfile

__all__ = [
    "UserProfile",
    "Destination",
    "Coordinates",
    "MatchRecord",
    "LikeResult",
]

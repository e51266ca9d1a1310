"""Data models for streetart."""

from streetart.models.marker import MarkerIcon, StackingPriority
from streetart.models.spot import Spot, SpotPatch

__all__ = [
    "MarkerIcon",
    "Spot",
    "SpotPatch",
    "StackingPriority",
]

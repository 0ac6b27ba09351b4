"""Artifact Promoter: repository tiers, promotion and privileges."""

from .model import ArtifactRecord, Coordinates, PromotionError, PromotionRecord, parse_coordinates
from .repository import FileSystemRepositoryManager

__all__ = [
    "ArtifactRecord",
    "Coordinates",
    "FileSystemRepositoryManager",
    "PromotionError",
    "PromotionRecord",
    "parse_coordinates",
]

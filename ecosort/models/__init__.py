"""Data models for source verification."""

from .base import DBModel
from .source import (
    CachedSource,
    CitedSource,
    LegislativeEvent,
    SourceCategory,
    SourceMetadata,
    SourceType,
    SourceValidationResult,
    Stability,
    StabilityLogEntry,
    to_citations,
)

__all__ = [
    "DBModel",
    "CachedSource",
    "CitedSource",
    "LegislativeEvent",
    "SourceCategory",
    "SourceMetadata",
    "SourceType",
    "SourceValidationResult",
    "Stability",
    "StabilityLogEntry",
    "to_citations",
]

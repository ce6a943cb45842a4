"""Source URL validation."""

from .analyzer import ContentAnalysis, analyze, compute_content_hash, extract_title
from .extraction import extract_source_metadata
from .prober import URLProber
from .stability import (
    calculate_next_check_date,
    classify_category,
    classify_stability,
    recheck_interval_days,
)

__all__ = [
    "ContentAnalysis",
    "URLProber",
    "analyze",
    "calculate_next_check_date",
    "classify_category",
    "classify_stability",
    "compute_content_hash",
    "extract_source_metadata",
    "extract_title",
    "recheck_interval_days",
]

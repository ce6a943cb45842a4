"""Source caching and enrichment."""

from .orchestrator import SourceCacheOrchestrator, create_orchestrator, region_for_location
from .rules import (
    ProcessedRule,
    directory_search_citation,
    enrich_location_rules,
    find_municipal_rule,
    process_municipal_rule,
    validate_cited_sources,
)

__all__ = [
    "ProcessedRule",
    "SourceCacheOrchestrator",
    "create_orchestrator",
    "directory_search_citation",
    "enrich_location_rules",
    "find_municipal_rule",
    "process_municipal_rule",
    "region_for_location",
    "validate_cited_sources",
]

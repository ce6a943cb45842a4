"""Municipal rule lookup and location-rules source enrichment."""

import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, urlparse

import pendulum
from pydantic import BaseModel, Field

from ..config import CacheConfig
from ..models import CitedSource, SourceMetadata
from ..validation.extraction import extract_source_metadata
from ..validation.prober import URLProber

logger = logging.getLogger(__name__)

# A rule is either legacy free text or {"text": ..., "sources": [...]}
MunicipalRule = Union[str, Dict[str, Any]]

DIRECTORY_SOURCE_TYPE = "directory"


class ProcessedRule(BaseModel):
    """Municipal rule with its sources separated from the text."""

    text: str = Field(..., description="Rule text")
    sources: List[SourceMetadata] = Field(default_factory=list)
    is_legacy_format: bool = Field(False, description="Whether sources were parsed out of text")


def is_http_url(url: Any) -> bool:
    """Whether a value is an absolute http(s) URL with a hostname."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def directory_search_url(location: str, cache_config: Optional[CacheConfig] = None) -> str:
    """Directory search link for a location."""
    cache_config = cache_config or CacheConfig()
    return cache_config.fallback_url_template.format(where=quote(location.strip(), safe=""))


def directory_search_citation(
    location: str,
    cache_config: Optional[CacheConfig] = None,
) -> CitedSource:
    """Fallback citation used when no candidate source survives validation."""
    cache_config = cache_config or CacheConfig()
    return CitedSource(
        name=cache_config.fallback_name,
        url=directory_search_url(location, cache_config),
        type=DIRECTORY_SOURCE_TYPE,
    )


def process_municipal_rule(rule: MunicipalRule) -> ProcessedRule:
    """Normalize a rule, extracting inline sources from legacy text."""
    if isinstance(rule, str):
        text, sources = extract_source_metadata(rule)
        return ProcessedRule(text=text, sources=sources, is_legacy_format=True)
    return ProcessedRule(
        text=rule.get("text", ""),
        sources=rule.get("sources") or [],
        is_legacy_format=False,
    )


def find_municipal_rule(
    item: str,
    location_key: str,
    municipal_rules: Dict[str, Dict[str, MunicipalRule]],
) -> Optional[ProcessedRule]:
    """
    Most specific rule for an item at a location.

    The longest rule key contained in the item name wins. Locations without
    a table fall back to the "default" table.
    """
    location_rules = municipal_rules.get(location_key) or municipal_rules.get("default")
    if not location_rules:
        return None

    item_lower = item.lower()
    best_match = None
    for key in location_rules:
        if key in item_lower and (best_match is None or len(key) > len(best_match)):
            best_match = key

    if best_match is None:
        return None
    return process_municipal_rule(location_rules[best_match])


async def validate_cited_sources(
    sources: Any,
    city: str,
    prober: URLProber,
    cache_config: Optional[CacheConfig] = None,
    timeout: Optional[float] = None,
) -> List[CitedSource]:
    """
    Keep the AI-suggested sources whose URLs validate.

    Returns exactly the directory fallback when nothing survives.
    """
    if not isinstance(sources, list) or not sources:
        logger.info("No sources provided for %s, using directory fallback", city)
        return [directory_search_citation(city, cache_config)]

    candidates = []
    for source in sources:
        if not isinstance(source, dict) or not is_http_url(source.get("url")):
            logger.info("Dropping source with invalid URL format: %r", source)
            continue
        url = source["url"].strip()
        candidates.append(
            CitedSource(
                name=source.get("name") or urlparse(url).hostname,
                url=url,
                type=source.get("type") or "website",
            )
        )

    results = await prober.probe_all([c.url for c in candidates], timeout=timeout)
    validated = [c for c in candidates if results[c.url].is_valid]

    if not validated:
        logger.info("No valid sources found for %s, using directory fallback", city)
        return [directory_search_citation(city, cache_config)]
    return validated


async def enrich_location_rules(
    payload: Dict[str, Any],
    city: str,
    prober: URLProber,
    cache_config: Optional[CacheConfig] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Replace a rules payload's sources with validated entries and stamp it."""
    enriched = dict(payload)
    sources = await validate_cited_sources(
        payload.get("sources"), city, prober, cache_config, timeout
    )
    enriched["sources"] = [s.model_dump() for s in sources]
    enriched["fetched_at"] = pendulum.now("UTC").to_iso8601_string()
    enriched["location"] = city.strip()
    return enriched

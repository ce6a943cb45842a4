"""Source cache orchestrator: trust the cache or revalidate, then persist."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pendulum

from ..config import CacheConfig, Config
from ..db import SourceCacheStore, VolatilityWindowChecker, get_connection_pool
from ..db.protocols import SourceStore, VolatilityChecker
from ..errors import InvalidSourceRequest, StoreError
from ..models import SourceMetadata, SourceType, SourceValidationResult, Stability
from ..validation.extraction import extract_source_metadata
from ..validation.prober import URLProber
from ..validation.stability import classify_stability
from .rules import directory_search_url, enrich_location_rules, is_http_url

logger = logging.getLogger(__name__)


def region_for_location(location: str) -> str:
    """Region used for deadline lookups: "Oakland, CA" -> "CA"."""
    parts = [part.strip() for part in location.split(",") if part.strip()]
    return parts[-1] if parts else location.strip()


def merge_sources(
    candidates: List[SourceMetadata],
    cached: List[SourceMetadata],
) -> List[SourceMetadata]:
    """
    Candidates first, then cached sources, de-duplicated by (type, value).

    URL sources get the stability class of their domain, whatever the caller set.
    """
    merged: Dict[Tuple, SourceMetadata] = {}
    for source in list(candidates) + list(cached):
        if source.key not in merged:
            copy = source.model_copy()
            if copy.type == SourceType.URL:
                copy.stability = classify_stability(copy.value)
            merged[source.key] = copy
    return list(merged.values())


class SourceCacheOrchestrator:
    """Validate, cache and return the sources shown for a (location, item)."""

    def __init__(
        self,
        store: SourceStore,
        volatility: VolatilityChecker,
        prober: URLProber,
        cache_config: Optional[CacheConfig] = None,
        rules_timeout: Optional[float] = None,
    ) -> None:
        """Initialize orchestrator."""
        self.store = store
        self.volatility = volatility
        self.prober = prober
        self.cache_config = cache_config or CacheConfig()
        self.rules_timeout = rules_timeout

    def fallback_source(self, location: str) -> SourceMetadata:
        """Directory search entry, so the user always has a way to self-verify."""
        return SourceMetadata(
            type=SourceType.DIRECTORY,
            value=directory_search_url(location, self.cache_config),
            name=self.cache_config.fallback_name,
            verified=True,
            stability=Stability.HIGH,
        )

    def _check_request(
        self,
        location: str,
        item_pattern: str,
        candidate_sources: List[SourceMetadata],
    ) -> None:
        if not location or not location.strip():
            raise InvalidSourceRequest("location must not be empty")
        if not item_pattern or not item_pattern.strip():
            raise InvalidSourceRequest("item pattern must not be empty")
        for source in candidate_sources:
            if source.type == SourceType.URL and not is_http_url(source.value):
                raise InvalidSourceRequest(f"not an absolute http(s) URL: {source.value!r}")

    async def _revalidate(
        self,
        sources: List[SourceMetadata],
        previous_hashes: Dict[str, str],
    ) -> Dict[str, SourceValidationResult]:
        """Probe every URL source and stamp the outcome on it."""
        url_sources = [s for s in sources if s.type == SourceType.URL]
        results = await self.prober.probe_all([s.value for s in url_sources], previous_hashes)

        for source in sources:
            if source.type == SourceType.URL:
                result = results[source.value]
                source.verified = result.is_valid
                if result.is_valid:
                    source.verified_at = result.checked_at
            else:
                # Phone numbers and facility names need no probe
                source.verified = True
        return results

    def _presentable(self, location: str, sources: List[SourceMetadata]) -> List[SourceMetadata]:
        """Drop failed URLs; fall back to directory search when no URL survived."""
        shown = [s for s in sources if s.type != SourceType.URL or s.verified]
        if not any(s.type == SourceType.URL for s in shown):
            shown.append(self.fallback_source(location))
        return shown

    async def get_validated_sources(
        self,
        location: str,
        item_pattern: str,
        guidance_text: str,
        candidate_sources: List[SourceMetadata],
        now: Optional[datetime] = None,
    ) -> List[SourceMetadata]:
        """
        Sources to show for a location and item.

        A fresh cache entry outside any volatility window is served without
        network calls or writes; URLs that failed their last check are still
        hidden and the directory fallback still applies. Otherwise every URL source (candidate or
        cached) is probed and the results are persisted. A failed write is
        logged and the freshly validated list is still returned.

        Raises:
            InvalidSourceRequest: empty location or item, or malformed URL
        """
        self._check_request(location, item_pattern, candidate_sources)
        if now is None:
            now = pendulum.now("UTC")

        cached = await self.store.read(location, item_pattern)
        if cached is not None and not cached.needs_validation(now):
            region = region_for_location(location)
            if not await self.volatility.is_volatile(region, now.date()):
                logger.debug("Cache hit for %s/%s", location, item_pattern)
                return self._presentable(location, [s.model_copy() for s in cached.sources])
            logger.info("%s is inside a volatility window, revalidating %s", region, item_pattern)

        sources = merge_sources(candidate_sources, cached.sources if cached else [])
        previous_hashes = {}
        if cached and cached.primary_url and cached.content_hash:
            previous_hashes[cached.primary_url] = cached.content_hash

        results = await self._revalidate(sources, previous_hashes)

        try:
            await self.store.write(location, item_pattern, guidance_text, sources, results, now)
        except StoreError as e:
            logger.error(
                "Could not cache sources for %s/%s: %s", location, item_pattern, e, exc_info=True
            )

        return self._presentable(location, sources)

    async def validate_guidance(
        self,
        location: str,
        item_pattern: str,
        guidance_text: str,
    ) -> Tuple[str, List[SourceMetadata]]:
        """Extract sources from guidance text and validate them."""
        cleaned_text, sources = extract_source_metadata(guidance_text)
        validated = await self.get_validated_sources(location, item_pattern, cleaned_text, sources)
        return cleaned_text, validated

    async def enrich_location_rules(self, payload: Dict[str, Any], city: str) -> Dict[str, Any]:
        """Validate the sources of a location-rules payload with the short rules timeout."""
        return await enrich_location_rules(
            payload, city, self.prober, self.cache_config, self.rules_timeout
        )

    async def is_first_user_from_location(self, location: str) -> bool:
        """Whether no one has looked anything up for this location yet."""
        return await self.store.is_first_user_from_location(location)


async def create_orchestrator(config: Optional[Config] = None) -> SourceCacheOrchestrator:
    """Build an orchestrator backed by the configured Postgres pool."""
    config = config or Config()
    settings = config.config
    pool = await get_connection_pool(config.get_db_config())
    prober = URLProber(
        timeout=settings.validator.timeout_seconds,
        user_agent=settings.validator.user_agent,
        max_concurrent=settings.validator.max_concurrent_probes,
    )
    return SourceCacheOrchestrator(
        store=SourceCacheStore(pool, settings.cache.failure_lookback),
        volatility=VolatilityWindowChecker(pool, settings.cache.volatility_window_days),
        prober=prober,
        cache_config=settings.cache,
        rules_timeout=settings.validator.rules_timeout_seconds,
    )

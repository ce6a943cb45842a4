"""Source cache storage."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pendulum
import psycopg
from psycopg_pool import AsyncConnectionPool

from ..errors import StoreError
from ..models import (
    CachedSource,
    SourceMetadata,
    SourceType,
    SourceValidationResult,
    Stability,
    StabilityLogEntry,
)
from ..validation.stability import (
    calculate_next_check_date,
    classify_category,
    classify_stability,
)

logger = logging.getLogger(__name__)

UPSERT_SQL = """
INSERT INTO municipal_sources (
    location, item_pattern, guidance_text, source_type,
    source_url, source_phone, source_facility_name,
    content_hash, http_status, soft_404_detected, parked_domain_detected,
    last_verified_at, next_check_date, verification_error
) VALUES (
    %(location)s, %(item_pattern)s, %(guidance_text)s, %(source_type)s,
    %(source_url)s, %(source_phone)s, %(source_facility_name)s,
    %(content_hash)s, %(http_status)s, %(soft_404_detected)s, %(parked_domain_detected)s,
    %(last_verified_at)s, %(next_check_date)s, %(verification_error)s
)
ON CONFLICT (location, item_pattern) DO UPDATE SET
    guidance_text = EXCLUDED.guidance_text,
    source_type = EXCLUDED.source_type,
    source_url = EXCLUDED.source_url,
    source_phone = EXCLUDED.source_phone,
    source_facility_name = EXCLUDED.source_facility_name,
    content_hash = EXCLUDED.content_hash,
    http_status = EXCLUDED.http_status,
    soft_404_detected = EXCLUDED.soft_404_detected,
    parked_domain_detected = EXCLUDED.parked_domain_detected,
    last_verified_at = EXCLUDED.last_verified_at,
    next_check_date = EXCLUDED.next_check_date,
    verification_error = EXCLUDED.verification_error
RETURNING id
"""

INSERT_LOG_SQL = """
INSERT INTO source_stability_log (
    source_id, url, checked_at, http_status, is_valid,
    soft_404_detected, parked_domain_detected, content_hash, content_changed,
    error_message, repair_attempted, repair_successful
) VALUES (
    %(source_id)s, %(url)s, %(checked_at)s, %(http_status)s, %(is_valid)s,
    %(soft_404_detected)s, %(parked_domain_detected)s, %(content_hash)s, %(content_changed)s,
    %(error_message)s, %(repair_attempted)s, %(repair_successful)s
)
"""

RECENT_CHECKS_SQL = """
SELECT l.is_valid
FROM source_stability_log l
JOIN municipal_sources m ON m.id = l.source_id
WHERE m.location = %s AND m.item_pattern = %s AND l.url = %s
ORDER BY l.checked_at DESC
LIMIT %s
"""


def normalize_key(value: str) -> str:
    """Cache keys are stored trimmed and lower-cased."""
    return value.strip().lower()


def primary_url_source(sources: List[SourceMetadata]) -> Optional[SourceMetadata]:
    """First verified URL source, else the first URL source."""
    url_sources = [s for s in sources if s.type == SourceType.URL]
    for source in url_sources:
        if source.verified:
            return source
    return url_sources[0] if url_sources else None


def _first_of_type(sources: List[SourceMetadata], source_type: SourceType) -> Optional[SourceMetadata]:
    return next((s for s in sources if s.type == source_type), None)


def count_consecutive_failures(
    recent_checks: List[bool],
    current: Optional[SourceValidationResult] = None,
) -> int:
    """
    Length of the current run of failed checks.

    Args:
        recent_checks: validity of previous checks, newest first
        current: the check being recorded now, if any
    """
    if current is not None and current.is_valid:
        return 0
    failures = 0
    for is_valid in recent_checks:
        if is_valid:
            break
        failures += 1
    if current is not None:
        failures += 1
    return failures


def build_source_row(
    location: str,
    item_pattern: str,
    guidance_text: str,
    sources: List[SourceMetadata],
    validation_results: Dict[str, SourceValidationResult],
    now: datetime,
    recent_failures: int = 0,
) -> Dict[str, Any]:
    """Flatten sources and the primary URL's validation into a municipal_sources row."""
    url_source = primary_url_source(sources)
    phone_source = _first_of_type(sources, SourceType.PHONE)
    facility_source = _first_of_type(sources, SourceType.FACILITY)
    url_validation = validation_results.get(url_source.value) if url_source else None
    stability = classify_stability(url_source.value) if url_source else Stability.MEDIUM
    category = classify_category(url_source.value) if url_source else None

    return {
        "location": normalize_key(location),
        "item_pattern": normalize_key(item_pattern),
        "guidance_text": guidance_text,
        "source_type": category.value if category else None,
        "source_url": url_source.value if url_source else None,
        "source_phone": phone_source.value if phone_source else None,
        "source_facility_name": facility_source.value if facility_source else None,
        "content_hash": url_validation.content_hash if url_validation else None,
        "http_status": url_validation.http_status if url_validation else None,
        "soft_404_detected": url_validation.is_soft_404 if url_validation else False,
        "parked_domain_detected": url_validation.is_parked_domain if url_validation else False,
        "last_verified_at": now,
        "next_check_date": calculate_next_check_date(stability, recent_failures, now),
        "verification_error": url_validation.error_message if url_validation else None,
    }


def row_to_cached_source(row: Dict[str, Any]) -> CachedSource:
    """Reconstruct a CachedSource from a flat municipal_sources row."""
    last_verified_at = row.get("last_verified_at")
    sources: List[SourceMetadata] = []

    if row.get("source_url"):
        verified = (
            row.get("http_status") == 200
            and not row.get("soft_404_detected")
            and not row.get("parked_domain_detected")
        )
        sources.append(
            SourceMetadata(
                type=SourceType.URL,
                value=row["source_url"],
                verified=verified and last_verified_at is not None,
                verified_at=last_verified_at if verified else None,
                stability=classify_stability(row["source_url"]),
            )
        )

    if row.get("source_phone"):
        sources.append(
            SourceMetadata(
                type=SourceType.PHONE,
                value=row["source_phone"],
                verified=True,
                verified_at=last_verified_at,
                stability=Stability.HIGH,
            )
        )

    if row.get("source_facility_name"):
        sources.append(
            SourceMetadata(
                type=SourceType.FACILITY,
                value=row["source_facility_name"],
                verified=True,
                verified_at=last_verified_at,
                stability=Stability.MEDIUM,
            )
        )

    return CachedSource(
        id=row.get("id"),
        location=row["location"],
        item_pattern=row["item_pattern"],
        guidance_text=row.get("guidance_text") or "",
        sources=sources,
        source_type=row.get("source_type"),
        content_hash=row.get("content_hash"),
        last_verified_at=last_verified_at,
        next_check_date=row.get("next_check_date"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class SourceCacheStore:
    """Persist validated sources and their audit trail in Postgres."""

    def __init__(self, pool: AsyncConnectionPool, failure_lookback: int = 10) -> None:
        """Initialize source cache store."""
        self.pool = pool
        self.failure_lookback = failure_lookback

    async def read(self, location: str, item_pattern: str) -> Optional[CachedSource]:
        """
        Look up the cached record for a key.

        Database errors are treated as a cache miss.
        """
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        SELECT *
                        FROM municipal_sources
                        WHERE location = %s AND item_pattern = %s
                        LIMIT 1
                        """,
                        (normalize_key(location), normalize_key(item_pattern)),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            logger.error(
                "Error reading cached sources for %s/%s: %s", location, item_pattern, e, exc_info=True
            )
            return None

        if row is None:
            return None
        return row_to_cached_source(row)

    async def _recent_checks(
        self,
        cur: psycopg.AsyncCursor,
        location: str,
        item_pattern: str,
        url: str,
    ) -> List[bool]:
        """Validity of the newest logged checks of a URL, newest first."""
        await cur.execute(RECENT_CHECKS_SQL, (location, item_pattern, url, self.failure_lookback))
        rows = await cur.fetchall()
        return [bool(row["is_valid"]) for row in rows]

    async def write(
        self,
        location: str,
        item_pattern: str,
        guidance_text: str,
        sources: List[SourceMetadata],
        validation_results: Optional[Dict[str, SourceValidationResult]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[int]:
        """
        Upsert the record for a key and append one log entry per probed URL.

        Returns:
            The municipal_sources row id

        Raises:
            StoreError: if the database rejects the write
        """
        if now is None:
            now = pendulum.now("UTC")
        location = normalize_key(location)
        item_pattern = normalize_key(item_pattern)
        validation_results = validation_results or {}

        url_source = primary_url_source(sources)
        url_validation = validation_results.get(url_source.value) if url_source else None

        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    recent_failures = 0
                    if url_source:
                        recent_checks = await self._recent_checks(
                            cur, location, item_pattern, url_source.value
                        )
                        recent_failures = count_consecutive_failures(recent_checks, url_validation)

                    row = build_source_row(
                        location,
                        item_pattern,
                        guidance_text,
                        sources,
                        validation_results,
                        now,
                        recent_failures,
                    )
                    await cur.execute(UPSERT_SQL, row)
                    source_id = (await cur.fetchone())["id"]

                    for result in validation_results.values():
                        entry = StabilityLogEntry.from_result(source_id, result)
                        await cur.execute(INSERT_LOG_SQL, entry.insert_params())

                await conn.commit()
        except psycopg.Error as e:
            raise StoreError(f"Failed to save sources for {location}/{item_pattern}: {e}") from e

        logger.debug(
            "Cached %s/%s (%d recent failures, next check %s)",
            location,
            item_pattern,
            recent_failures,
            row["next_check_date"],
        )
        return source_id

    async def is_first_user_from_location(self, location: str) -> bool:
        """Whether nothing is cached yet for a location."""
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT id FROM municipal_sources WHERE location = %s LIMIT 1",
                        (normalize_key(location),),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            # Assume not first to avoid unnecessary first-user messaging
            logger.error("Error checking first user for %s: %s", location, e, exc_info=True)
            return False
        return row is None

    async def failure_report(self, limit: int = 20, days: int = 30) -> List[Dict]:
        """Sources with failed checks in the last `days` days, most recent first."""
        cutoff = pendulum.now("UTC") - timedelta(days=days)
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT
                        m.location,
                        m.item_pattern,
                        l.url,
                        COUNT(*) FILTER (WHERE NOT l.is_valid) AS failures,
                        COUNT(*) AS checks,
                        MAX(l.checked_at) AS last_checked_at
                    FROM source_stability_log l
                    JOIN municipal_sources m ON m.id = l.source_id
                    WHERE l.checked_at >= %s
                    GROUP BY m.location, m.item_pattern, l.url
                    HAVING COUNT(*) FILTER (WHERE NOT l.is_valid) > 0
                    ORDER BY last_checked_at DESC
                    LIMIT %s
                    """,
                    (cutoff, limit),
                )
                return await cur.fetchall()

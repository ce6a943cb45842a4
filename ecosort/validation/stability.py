"""Domain stability classification and recheck scheduling."""

import math
from datetime import datetime
from typing import Iterable, Optional
from urllib.parse import urlparse

import pendulum

from ..models import SourceCategory, Stability
from .domains import (
    GOV_SUFFIX,
    HAULER_MARKERS,
    HIGH_STABILITY_DOMAINS,
    JPA_DOMAINS,
    MEDIUM_STABILITY_DOMAINS,
)

# Days until the next check, before failure adjustment
BASE_INTERVAL_DAYS = {
    Stability.HIGH: 90,
    Stability.MEDIUM: 30,
    Stability.LOW: 14,
}
MIN_INTERVAL_DAYS = 7


def _hostname(url: str) -> Optional[str]:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    return hostname.lower() if hostname else None


def _matches(hostname: str, domains: Iterable[str]) -> bool:
    """Exact match or subdomain of any listed domain."""
    return any(
        hostname == domain or hostname.endswith("." + domain)
        for domain in domains
    )


def classify_stability(url: str) -> Stability:
    """
    Map a URL's domain to a stability class.

    Allow-lists win over the .gov rule; anything unparseable or unknown is
    low, the most frequently revalidated class.
    """
    hostname = _hostname(url)
    if not hostname:
        return Stability.LOW

    if _matches(hostname, HIGH_STABILITY_DOMAINS):
        return Stability.HIGH
    if _matches(hostname, MEDIUM_STABILITY_DOMAINS):
        return Stability.MEDIUM
    if hostname.endswith(GOV_SUFFIX):
        return Stability.HIGH
    return Stability.LOW


def classify_category(url: str) -> Optional[SourceCategory]:
    """Tag a URL's issuer for reporting (jpa > gov > hauler > microsite)."""
    hostname = _hostname(url)
    if not hostname:
        return None

    if _matches(hostname, JPA_DOMAINS):
        return SourceCategory.JPA
    if hostname.endswith(GOV_SUFFIX):
        return SourceCategory.GOV
    if _matches(hostname, MEDIUM_STABILITY_DOMAINS) or any(
        marker in hostname for marker in HAULER_MARKERS
    ):
        return SourceCategory.HAULER
    return SourceCategory.MICROSITE


def recheck_interval_days(stability: Stability, recent_failures: int = 0) -> int:
    """Days until the next check; failing sources are rechecked sooner."""
    days = BASE_INTERVAL_DAYS[stability]
    if recent_failures > 0:
        days = max(MIN_INTERVAL_DAYS, math.floor(days / (recent_failures + 1)))
    return days


def calculate_next_check_date(
    stability: Stability,
    recent_failures: int = 0,
    now: Optional[datetime] = None,
) -> datetime:
    """Next check date for a source checked at `now`."""
    if now is None:
        now = pendulum.now("UTC")
    return pendulum.instance(now).add(days=recheck_interval_days(stability, recent_failures))

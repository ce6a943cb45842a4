"""Shared test fixtures: fake HTTP sites, in-memory store, scripted psycopg pool."""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from ecosort.errors import StoreError
from ecosort.db.sources import (
    build_source_row,
    count_consecutive_failures,
    normalize_key,
    primary_url_source,
    row_to_cached_source,
)
from ecosort.models import CachedSource, SourceMetadata, SourceValidationResult
from ecosort.validation import URLProber

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

GUIDE_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Residential Recycling Guide | StopWaste</title>
  <script>window.session = "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08";</script>
</head>
<body class="page-guide" data-build="2026-02-01T10:00:00">
  <header><a href="/">Home</a></header>
  <main id="content">
    <h1>What goes in the green cart</h1>
    <p>Food scraps, food-soiled paper and clean pizza boxes go in the green cart.
       Flatten large cardboard boxes and place them in the blue recycling cart.</p>
    <p>Plastic bags and film are not accepted curbside. Return them to a
       participating grocery store drop-off point instead.</p>
    <p>Batteries and electronics are household hazardous waste and must be taken
       to a hazardous waste facility, never placed in any curbside cart.</p>
  </main>
  <footer>Alameda County Waste Management Authority</footer>
</body>
</html>
"""

SOFT_404_HTML = """<html>
<head><title>404 Page Not Found</title></head>
<body>
  <nav><a href="/">Home</a> <a href="/services">Services</a> <a href="/news">News</a>
       <a href="/departments">Departments</a> <a href="/contact">Contact</a></nav>
  <p>Oops.</p>
  <footer><a href="/privacy">Privacy</a> <a href="/accessibility">Accessibility</a>
       City Hall, 100 Main Street</footer>
</body>
</html>
"""

PARKED_HTML = """<html>
<head><title>springfield-recycling.example</title></head>
<body><h1>springfield-recycling.example</h1><p>This domain may be for sale.</p></body>
</html>
"""


def page(html: str, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """Route returning a fresh HTML response for every request."""
    return lambda request: httpx.Response(status, html=html)


def status(code: int) -> Callable[[httpx.Request], httpx.Response]:
    """Route returning a bare status for every request."""
    return lambda request: httpx.Response(code)


class FakeSites:
    """URL -> route table for httpx.MockTransport; records every request."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes: Dict[str, Any] = dict(routes or {})
        self.requests: List[Tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        return route(request)

    def urls_requested(self) -> List[str]:
        return [url for _, url in self.requests]


class FakeSourceStore:
    """Dict-backed SourceStore that flattens rows like the SQL store."""

    def __init__(self) -> None:
        self.rows: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.history: Dict[Tuple[str, str, str], List[bool]] = {}
        self.writes: List[Dict[str, Any]] = []
        self.fail_writes = False
        self._next_id = 1

    def seed(self, cached: CachedSource) -> None:
        key = (normalize_key(cached.location), normalize_key(cached.item_pattern))
        self.rows[key] = {"cached": cached}

    async def read(self, location: str, item_pattern: str) -> Optional[CachedSource]:
        entry = self.rows.get((normalize_key(location), normalize_key(item_pattern)))
        if entry is None:
            return None
        if "cached" in entry:
            return entry["cached"].model_copy(deep=True)
        return row_to_cached_source(entry)

    async def write(
        self,
        location: str,
        item_pattern: str,
        guidance_text: str,
        sources: List[SourceMetadata],
        validation_results: Optional[Dict[str, SourceValidationResult]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[int]:
        if self.fail_writes:
            raise StoreError("database unavailable")
        validation_results = validation_results or {}
        key = (normalize_key(location), normalize_key(item_pattern))

        url_source = primary_url_source(sources)
        failures = 0
        if url_source:
            past = self.history.get(key + (url_source.value,), [])
            failures = count_consecutive_failures(past, validation_results.get(url_source.value))

        row = build_source_row(
            location, item_pattern, guidance_text, sources, validation_results, now or NOW, failures
        )
        existing = self.rows.get(key, {})
        row["id"] = existing.get("id") or self._next_id
        self._next_id += 1
        self.rows[key] = row

        for url, result in validation_results.items():
            self.history.setdefault(key + (url,), []).insert(0, result.is_valid)

        self.writes.append(
            {
                "location": location,
                "item_pattern": item_pattern,
                "guidance_text": guidance_text,
                "sources": [s.model_copy() for s in sources],
                "validation_results": dict(validation_results),
                "row": row,
            }
        )
        return row["id"]

    async def is_first_user_from_location(self, location: str) -> bool:
        return not any(loc == normalize_key(location) for loc, _ in self.rows)


class FakeVolatilityChecker:
    """VolatilityChecker answering from a fixed set of regions."""

    def __init__(self, volatile_regions: Optional[set] = None) -> None:
        self.volatile_regions = {r.lower() for r in (volatile_regions or set())}
        self.calls: List[Tuple[str, Optional[date]]] = []

    async def is_volatile(self, region: str, as_of: Optional[date] = None) -> bool:
        self.calls.append((region, as_of))
        return region.lower() in self.volatile_regions


class FakeCursor:
    def __init__(self, pool: "FakePool") -> None:
        self.pool = pool
        self._rows: List[Dict[str, Any]] = []

    async def __aenter__(self) -> "FakeCursor":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    async def execute(self, sql: str, params: Any = None) -> None:
        self.pool.executed.append((" ".join(sql.split()), params))
        if self.pool.error is not None:
            raise self.pool.error
        self._rows = self.pool.results.pop(0) if self.pool.results else []

    async def fetchone(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None

    async def fetchall(self) -> List[Dict[str, Any]]:
        return list(self._rows)


class FakeConnection:
    def __init__(self, pool: "FakePool") -> None:
        self.pool = pool

    def cursor(self) -> FakeCursor:
        return FakeCursor(self.pool)

    async def commit(self) -> None:
        self.pool.commits += 1


class FakePool:
    """Stands in for psycopg_pool.AsyncConnectionPool.

    Each execute() consumes the next entry of `results` as its row set.
    """

    def __init__(
        self,
        results: Optional[List[List[Dict[str, Any]]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.results = list(results or [])
        self.error = error
        self.executed: List[Tuple[str, Any]] = []
        self.commits = 0

    @asynccontextmanager
    async def connection(self):
        yield FakeConnection(self)


@pytest.fixture
def sites() -> FakeSites:
    return FakeSites()


@pytest.fixture
def prober(sites: FakeSites) -> URLProber:
    return URLProber(timeout=8.0, max_concurrent=3, transport=httpx.MockTransport(sites))


@pytest.fixture
def fake_store() -> FakeSourceStore:
    return FakeSourceStore()


@pytest.fixture
def fake_volatility() -> FakeVolatilityChecker:
    return FakeVolatilityChecker()

"""URL prober: HEAD with GET fallback, then content analysis."""

import asyncio
import hashlib
import logging
from typing import Dict, List, Optional

import httpx

from ..models import SourceValidationResult
from .analyzer import analyze, extract_title

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "EcoSort-SourceValidator/1.0 (Municipal Waste Data Verification)"

# HEAD responses that mean "HEAD not supported here", not "URL is broken"
HEAD_REJECTED_STATUSES = frozenset([403, 405, 501])
NOT_FOUND_STATUSES = frozenset([404, 410])

SOFT_404_MESSAGE = "Soft 404 detected: Page returns 200 but contains error content"
PARKED_DOMAIN_MESSAGE = "Parked domain detected: Domain may have expired or been abandoned"


class URLProber:
    """Probe candidate source URLs and classify the outcome."""

    def __init__(
        self,
        timeout: float = 8.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_concurrent: int = 4,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize URL prober."""
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_concurrent = max_concurrent
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        }
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
            transport=self.transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        url: str,
        timeout: float,
    ) -> httpx.Response:
        """HEAD first; one GET, with its own deadline, if HEAD fails or is rejected.

        Each attempt is bounded end to end by `timeout`; httpx alone only
        bounds each connect or read.
        """
        try:
            response = await asyncio.wait_for(client.head(url), timeout=timeout)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.debug("HEAD failed for %s (%r), falling back to GET", url, e)
            return await asyncio.wait_for(client.get(url), timeout=timeout)

        if response.status_code in HEAD_REJECTED_STATUSES:
            logger.debug("HEAD rejected for %s (%s), falling back to GET", url, response.status_code)
            return await asyncio.wait_for(client.get(url), timeout=timeout)

        if response.status_code == 200 and response.request.method == "HEAD":
            # A HEAD response has no body to analyze
            return await asyncio.wait_for(client.get(url), timeout=timeout)

        return response

    def _evaluate(
        self,
        result: SourceValidationResult,
        response: httpx.Response,
        previous_hash: Optional[str],
    ) -> SourceValidationResult:
        """Classify a response into the validation result."""
        status = response.status_code
        result.http_status = status

        if status in NOT_FOUND_STATUSES:
            result.error_message = f"HTTP {status}: Resource not found"
            return result

        if status >= 500:
            result.error_message = f"HTTP {status}: Server error"
            return result

        if status != 200:
            result.error_message = f"HTTP {status}: Unexpected status code"
            return result

        content_type = response.headers.get("content-type", "").lower()
        if content_type and "html" not in content_type and not content_type.startswith("text/"):
            # PDFs and other documents: nothing to inspect, hash the bytes
            result.content_hash = hashlib.sha256(response.content).hexdigest()
        else:
            html = response.text
            analysis = analyze(html, extract_title(html))
            result.is_soft_404 = analysis.is_soft_404
            result.is_parked_domain = analysis.is_parked_domain
            result.content_hash = analysis.content_hash

            if result.is_soft_404:
                result.error_message = SOFT_404_MESSAGE
                return result
            if result.is_parked_domain:
                result.error_message = PARKED_DOMAIN_MESSAGE
                return result

        if previous_hash and previous_hash != result.content_hash:
            result.content_changed = True

        return result

    async def probe(
        self,
        url: str,
        previous_hash: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SourceValidationResult:
        """
        Probe a single URL.

        Never raises: transport failures are recorded as an invalid result
        with no HTTP status.
        """
        if timeout is None:
            timeout = self.timeout
        result = SourceValidationResult(url=url)

        try:
            async with self._client(timeout) as client:
                response = await self._request(client, url, timeout)
                self._evaluate(result, response, previous_hash)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            result.error_message = f"Timeout after {int(timeout * 1000)}ms"
        except httpx.HTTPError as e:
            result.error_message = f"Network error: {e}"
        except Exception as e:
            result.error_message = f"Unexpected error: {e}"

        if result.is_valid:
            logger.debug("Validated %s (hash %s)", url, result.content_hash)
        else:
            logger.warning("URL validation failed: %s - %s", url, result.error_message)
        return result

    async def probe_all(
        self,
        urls: List[str],
        previous_hashes: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, SourceValidationResult]:
        """Probe URLs concurrently, at most max_concurrent at a time."""
        if not urls:
            return {}
        previous_hashes = previous_hashes or {}

        # Create semaphore for concurrency control
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def probe_with_semaphore(url: str) -> SourceValidationResult:
            async with semaphore:
                return await self.probe(url, previous_hashes.get(url), timeout)

        unique_urls = list(dict.fromkeys(urls))
        results = await asyncio.gather(*[probe_with_semaphore(url) for url in unique_urls])
        return dict(zip(unique_urls, results))

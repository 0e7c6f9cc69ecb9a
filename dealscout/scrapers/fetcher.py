"""Budgeted, retrying page fetcher with bot-detection back-off.

fetch() never raises for transport problems: failures end up as strings in
SessionStats.errors and the caller gets None.
"""

import asyncio
import random
from typing import Iterable, Optional

import httpx
import structlog
from bs4 import BeautifulSoup

from dealscout.config import DiscoveryConfig
from dealscout.core.exceptions import BlockedError, FetchError
from dealscout.scrapers.base import SessionStats
from dealscout.scrapers.utils.pacing import SleepFunc
from dealscout.scrapers.utils.retry import linear_retrying
from dealscout.scrapers.utils.user_agents import build_browser_headers

logger = structlog.get_logger(__name__)


def find_blocking_keyword(html: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first blocking keyword found in the page's visible text.

    Script, style and noscript contents and tag attributes are ignored so
    that markup such as <meta name="robots"> does not trigger a false alarm.

    Args:
        html: Response body
        keywords: Lower-case keywords to look for

    Returns:
        The matching keyword, or None
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(" ").lower()
    for keyword in keywords:
        if keyword and keyword.lower() in text:
            return keyword
    return None


class Fetcher:
    """HTTP page fetcher bound to a per-session request budget.

    Every attempt (retries included) consumes one unit of the budget held in
    the SessionStats passed to fetch().
    """

    def __init__(
        self,
        config: DiscoveryConfig,
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize fetcher.

        Args:
            config: Discovery configuration (retries, timeout, keywords)
            client: Optional pre-built httpx.AsyncClient (tests pass one
                backed by httpx.MockTransport)
            rng: Random source for User-Agent rotation
            sleep: Awaitable sleep used for retry waits and cooldowns
        """
        self.config = config
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep
        self._client = client
        self._owns_client = client is None
        self.logger = logger.bind(component="fetcher")

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        stats: SessionStats,
        detect_blocking: bool = True,
    ) -> Optional[str]:
        """Fetch a page, retrying transport failures with linear back-off.

        Args:
            url: Page URL
            stats: Session stats; request_count and errors are updated
            detect_blocking: Scan the body for bot-detection keywords

        Returns:
            HTML text, or None when the budget is exhausted, every attempt
            failed, or the page looks like a bot-detection wall
        """
        if stats.budget_exhausted:
            self.logger.warning(
                "request_budget_exhausted",
                url=url,
                budget=stats.request_budget,
            )
            return None

        retrying = linear_retrying(
            max_attempts=self.config.MAX_RETRIES,
            base_delay=self.config.RETRY_BASE_DELAY,
            sleep=self.sleep,
            should_stop=lambda: stats.budget_exhausted,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._attempt(
                        url, stats, detect_blocking, attempt.retry_state.attempt_number
                    )

        except BlockedError as e:
            self.logger.warning(
                "bot_detection",
                url=url,
                keyword=e.keyword,
                cooldown_seconds=self.config.BLOCK_COOLDOWN_SECONDS,
            )
            stats.errors.append(str(e))
            await self.sleep(self.config.BLOCK_COOLDOWN_SECONDS)
            return None

        except (FetchError, httpx.HTTPError, httpx.InvalidURL) as e:
            reason = e.reason if isinstance(e, FetchError) else (str(e) or type(e).__name__)
            self.logger.error("fetch_failed", url=url, error=reason)
            stats.errors.append(f"Failed to fetch {url}: {reason}")
            return None

        return None

    async def _attempt(
        self,
        url: str,
        stats: SessionStats,
        detect_blocking: bool,
        attempt_number: int,
    ) -> str:
        """Run one request attempt.

        Raises:
            FetchError: On timeout, transport error or non-2xx status
            BlockedError: When the body looks like a bot-detection page
        """
        stats.request_count += 1
        self.logger.info(
            "fetching_url",
            url=url,
            request=stats.request_count,
            budget=stats.request_budget,
            attempt=attempt_number,
            max_attempts=self.config.MAX_RETRIES,
        )

        headers = build_browser_headers(self.rng, self.config.ACCEPT_LANGUAGE)
        timeout = self.config.TIMEOUT_SECONDS

        try:
            response = await asyncio.wait_for(
                self._get_client().get(url, headers=headers, timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            self._log_attempt_failure(url, attempt_number, "timeout")
            raise FetchError(url, f"Timeout after {timeout:g}s") from e
        except httpx.TransportError as e:
            reason = str(e) or type(e).__name__
            self._log_attempt_failure(url, attempt_number, reason)
            raise FetchError(url, reason) from e

        if not response.is_success:
            reason = f"HTTP {response.status_code}: {response.reason_phrase}"
            self._log_attempt_failure(url, attempt_number, reason)
            raise FetchError(url, reason)

        html = response.text

        if detect_blocking:
            keyword = find_blocking_keyword(html, self.config.BLOCKING_KEYWORDS)
            if keyword:
                raise BlockedError(url, keyword)

        return html

    def _log_attempt_failure(self, url: str, attempt_number: int, reason: str) -> None:
        self.logger.warning(
            "fetch_attempt_failed",
            url=url,
            attempt=attempt_number,
            max_attempts=self.config.MAX_RETRIES,
            error=reason,
        )

"""Discovery session orchestration.

Drives fetch -> extract -> classify -> score for every configured source,
strictly one source at a time, under a per-session request budget, then
hands the accumulated listings to the aggregator.
"""

import asyncio
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import httpx
import structlog

from dealscout.config import DiscoveryConfig
from dealscout.scrapers.base import (
    CandidateListing,
    NormalizedListing,
    SessionStats,
    SourceConfig,
)
from dealscout.scrapers.extractor import extract
from dealscout.scrapers.fetcher import Fetcher
from dealscout.scrapers.sources import COMMUNITY_SOURCES
from dealscout.scrapers.utils.normalizer import CategoryClassifier
from dealscout.scrapers.utils.pacing import HumanPacer, SleepFunc
from dealscout.services.aggregator import (
    DEFAULT_LIMIT,
    QualityThresholds,
    run_aggregation,
)
from dealscout.services.deal_scorer import DealScorer

logger = structlog.get_logger(__name__)


@dataclass
class DiscoveryResult:
    """Outcome of one discovery session."""

    listings: List[NormalizedListing]
    stats: SessionStats
    found: int
    after_dedup: int
    after_filter: int
    duration_seconds: float
    paced_seconds: float = 0.0


class DealDiscovery:
    """Runs discovery sessions over a fixed list of sources.

    All collaborators are injectable: the HTTP client (through the Fetcher),
    the random source used for header rotation and pacing, and the sleep
    function. Tests pass a seeded Random and a no-op sleep.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        sources: Optional[Sequence[SourceConfig]] = None,
        fetcher: Optional[Fetcher] = None,
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFunc] = None,
        clock=time.monotonic,
    ):
        """Initialize discovery.

        Args:
            config: Discovery configuration; loaded from the environment if omitted
            sources: Sources to scrape, in order (community sources by default)
            fetcher: Pre-built Fetcher; built from config/client/rng/sleep otherwise
            client: httpx.AsyncClient handed to the Fetcher it builds
            rng: Random source for User-Agent choice and inter-source delays
            sleep: Awaitable sleep for retries, cooldowns and pacing
            clock: Monotonic clock used for the duration summary
        """
        self.config = config or DiscoveryConfig()
        self.sources = tuple(sources if sources is not None else COMMUNITY_SOURCES)
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep
        self.clock = clock
        self.fetcher = fetcher or Fetcher(self.config, client=client, rng=self.rng, sleep=self.sleep)
        self.pacer = HumanPacer(
            self.config.DELAY_MIN_SECONDS,
            self.config.DELAY_MAX_SECONDS,
            rng=self.rng,
            sleep=self.sleep,
        )
        self.classifier = CategoryClassifier(
            labels=self.config.CATEGORY_LABELS,
            aliases=self.config.CATEGORY_ALIASES,
        )
        self.scorer = DealScorer.from_config(self.config)
        self.thresholds = QualityThresholds.from_config(self.config)
        self.logger = logger.bind(service="deal_discovery")

    def normalize(self, candidate: CandidateListing, source: SourceConfig) -> NormalizedListing:
        """Classify and score one candidate.

        Category pages carry a fixed category hint which is classified on its
        own; everywhere else the title and the raw category label are matched
        together.
        """
        if source.category_hint:
            category_text = candidate.raw_category
        else:
            category_text = f"{candidate.title} {candidate.raw_category}"
        category = self.classifier.classify(category_text)
        score = self.scorer.score(candidate, category)
        return NormalizedListing(listing=candidate, category=category, score=score)

    async def _scrape_source(
        self,
        source: SourceConfig,
        stats: SessionStats,
        now: datetime,
    ) -> List[NormalizedListing]:
        html = await self.fetcher.fetch(source.url, stats, detect_blocking=source.detect_blocking)
        if html is None:
            return []

        candidates = extract(html, source, self.config, now=now)
        normalized = [self.normalize(candidate, source) for candidate in candidates]
        stats.deals_found += len(normalized)

        self.logger.info(
            "source_complete",
            source=source.name,
            listings=len(normalized),
            request_count=stats.request_count,
        )
        return normalized

    async def run(self, limit: int = DEFAULT_LIMIT) -> DiscoveryResult:
        """Run one full discovery session.

        Never raises for per-source failures (fetch errors or unexpected
        extraction errors); they are recorded in stats.errors and the source
        contributes nothing.

        Args:
            limit: Maximum number of listings to return

        Returns:
            DiscoveryResult with ranked listings, stats and stage counts
        """
        stats = SessionStats(request_budget=self.config.REQUEST_BUDGET)
        started = self.clock()
        slept_before = self.pacer.total_slept

        self.logger.info(
            "discovery_started",
            sources=[source.name for source in self.sources],
            request_budget=self.config.REQUEST_BUDGET,
            delay_range=(self.config.DELAY_MIN_SECONDS, self.config.DELAY_MAX_SECONDS),
        )

        collected: List[NormalizedListing] = []
        last_index = len(self.sources) - 1

        for index, source in enumerate(self.sources):
            if stats.budget_exhausted:
                self.logger.info(
                    "request_budget_reached",
                    skipped_sources=[s.name for s in self.sources[index:]],
                )
                break

            self.logger.info("scraping_source", source=source.name, url=source.url)
            try:
                collected.extend(await self._scrape_source(source, stats, stats.started_at))
            except Exception as e:
                self.logger.error(
                    "source_failed",
                    source=source.name,
                    error=str(e),
                    exc_info=True,
                )
                stats.errors.append(f"Failed to process {source.name}: {e}")

            if index < last_index and not stats.budget_exhausted:
                await self.pacer.pause()

        self.logger.info("post_processing", listings=len(collected))
        aggregation = run_aggregation(collected, limit, self.thresholds)

        result = DiscoveryResult(
            listings=aggregation.listings,
            stats=stats,
            found=aggregation.found,
            after_dedup=aggregation.after_dedup,
            after_filter=aggregation.after_filter,
            duration_seconds=self.clock() - started,
            paced_seconds=self.pacer.total_slept - slept_before,
        )
        self._log_summary(result)
        return result

    async def discover(self, limit: int = DEFAULT_LIMIT) -> List[NormalizedListing]:
        """Ranked top-`limit` listings for one session."""
        result = await self.run(limit)
        return result.listings

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    def _log_summary(self, result: DiscoveryResult) -> None:
        stats = result.stats
        self.logger.info(
            "discovery_summary",
            duration_seconds=round(result.duration_seconds, 1),
            requests=f"{stats.request_count}/{stats.request_budget}",
            requests_remaining=stats.requests_remaining,
            paced_seconds=round(result.paced_seconds, 1),
            listings_found=result.found,
            after_dedup=result.after_dedup,
            after_filter=result.after_filter,
            returned=len(result.listings),
            error_count=len(stats.errors),
        )
        for error in stats.errors:
            self.logger.warning("discovery_error", error=error)


async def discover(
    limit: int = DEFAULT_LIMIT,
    config: Optional[DiscoveryConfig] = None,
    sources: Optional[Sequence[SourceConfig]] = None,
) -> List[NormalizedListing]:
    """Run a discovery session with default collaborators.

    Args:
        limit: Maximum number of listings to return
        config: Discovery configuration; loaded from the environment if omitted
        sources: Sources to scrape (community sources by default)

    Returns:
        Ranked listings, best first
    """
    discovery = DealDiscovery(config=config, sources=sources)
    try:
        return await discovery.discover(limit)
    finally:
        await discovery.aclose()

"""Tests for cross-source dedup, quality filtering and ranking."""

from decimal import Decimal

import pytest

from dealscout.config import DiscoveryConfig
from dealscout.services.aggregator import (
    QualityThresholds,
    aggregate,
    dedupe_listings,
    filter_quality,
    passes_quality,
    rank_listings,
    run_aggregation,
)


@pytest.fixture
def thresholds() -> QualityThresholds:
    return QualityThresholds.from_config(DiscoveryConfig())


# ============================================================================
# TESTS: DEDUP
# ============================================================================

class TestDedupe:
    """Tests for dedupe_listings."""

    def test_higher_score_wins(self, make_listing):
        listings = [make_listing("B0SAMEID01", score=40), make_listing("B0SAMEID01", score=70)]
        result = dedupe_listings(listings)
        assert len(result) == 1
        assert result[0].score == 70

    def test_tie_keeps_first_seen(self, make_listing):
        first = make_listing("B0SAMEID01", score=60, source="Pelando")
        second = make_listing("B0SAMEID01", score=60, source="Promobit")
        assert dedupe_listings([first, second]) == [first]

    def test_survivor_keeps_first_position(self, make_listing):
        listings = [
            make_listing("B0AAAAAAAA", score=40),
            make_listing("B0BBBBBBBB", score=50),
            make_listing("B0AAAAAAAA", score=90),
        ]
        result = dedupe_listings(listings)
        assert [entry.listing_id for entry in result] == ["B0AAAAAAAA", "B0BBBBBBBB"]
        assert result[0].score == 90


# ============================================================================
# TESTS: QUALITY FILTER
# ============================================================================

class TestQualityFilter:
    """Tests for passes_quality and filter_quality."""

    def test_default_listing_passes(self, make_listing, thresholds):
        assert passes_quality(make_listing(), thresholds)

    def test_discount_floor_inclusive(self, make_listing, thresholds):
        assert not passes_quality(make_listing(discount=5), thresholds)
        assert passes_quality(make_listing(discount=10), thresholds)

    @pytest.mark.parametrize(
        "price, expected",
        [("19.99", False), ("20", True), ("3000", True), ("3000.01", False), ("0", False)],
    )
    def test_price_band_inclusive(self, make_listing, thresholds, price, expected):
        assert passes_quality(make_listing(price=Decimal(price)), thresholds) is expected

    def test_popularity_floor(self, make_listing, thresholds):
        assert not passes_quality(make_listing(popularity=4), thresholds)
        assert passes_quality(make_listing(popularity=5), thresholds)

    def test_title_length(self, make_listing, thresholds):
        assert not passes_quality(make_listing(title="Fone JBL"), thresholds)

    def test_rating_only_checked_when_present(self, make_listing, thresholds):
        assert passes_quality(make_listing(rating=0.0), thresholds)
        assert not passes_quality(make_listing(rating=2.5), thresholds)
        assert passes_quality(make_listing(rating=3.0), thresholds)

    def test_filter_keeps_order(self, make_listing, thresholds):
        listings = [
            make_listing("B0AAAAAAAA", score=10),
            make_listing("B0BBBBBBBB", score=90, discount=5),
            make_listing("B0CCCCCCCC", score=30),
        ]
        result = filter_quality(listings, thresholds)
        assert [entry.listing_id for entry in result] == ["B0AAAAAAAA", "B0CCCCCCCC"]


# ============================================================================
# TESTS: RANKING AND PIPELINE
# ============================================================================

class TestRanking:
    """Tests for rank_listings, aggregate and run_aggregation."""

    def test_sort_is_stable_and_descending(self, make_listing):
        listings = [
            make_listing("B0AAAAAAAA", score=50),
            make_listing("B0BBBBBBBB", score=80),
            make_listing("B0CCCCCCCC", score=50),
        ]
        result = rank_listings(listings)
        assert [entry.listing_id for entry in result] == ["B0BBBBBBBB", "B0AAAAAAAA", "B0CCCCCCCC"]

    def test_truncates_to_max_n(self, make_listing, thresholds):
        listings = [make_listing(f"B0ITEM{i:04d}", score=i) for i in range(30)]
        result = aggregate(listings, max_n=20, thresholds=thresholds)
        assert len(result) == 20
        assert result[0].score == 29

    def test_scores_non_increasing(self, make_listing, thresholds):
        listings = [make_listing(f"B0ITEM{i:04d}", score=(i * 37) % 101) for i in range(25)]
        scores = [entry.score for entry in aggregate(listings, max_n=25, thresholds=thresholds)]
        assert scores == sorted(scores, reverse=True)
        assert all(0 <= score <= 100 for score in scores)

    def test_dedup_runs_before_filter(self, make_listing, thresholds):
        """Test the higher-scored duplicate survives dedup even if it then fails the filter."""
        listings = [
            make_listing("B0SAMEID01", score=40),
            make_listing("B0SAMEID01", score=70, discount=5),
        ]
        result = run_aggregation(listings, 20, thresholds)
        assert result.found == 2
        assert result.after_dedup == 1
        assert result.after_filter == 0
        assert result.listings == []

    def test_empty_input(self, thresholds):
        result = run_aggregation([], 20, thresholds)
        assert result.listings == []
        assert (result.found, result.after_dedup, result.after_filter) == (0, 0, 0)

    def test_default_thresholds(self, make_listing):
        assert len(aggregate([make_listing()])) == 1

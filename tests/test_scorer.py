"""Tests for deal scoring profiles."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from dealscout.config import DiscoveryConfig, ScoringProfile
from dealscout.scrapers.base import CandidateListing
from dealscout.services.deal_scorer import DealScorer


def _listing(**overrides) -> CandidateListing:
    fields = dict(
        listing_id="pelando-fonejbl-100",
        title="Fone de Ouvido Bluetooth JBL Tune 520BT",
        price=Decimal("100"),
        source="Pelando",
        source_kind="community",
    )
    fields.update(overrides)
    return CandidateListing(**fields)


@pytest.fixture
def scorer(config) -> DealScorer:
    return DealScorer.from_config(config)


class TestCommunityProfile:
    """Tests for the community (upvote-based) profile."""

    def test_full_marks_without_item_id(self, scorer):
        listing = _listing(discount=40, popularity=99)
        assert scorer.score(listing, "electronics") == 85

    def test_item_id_bonus_capped_at_100(self, scorer):
        listing = _listing(listing_id="B0C1234567", item_id="B0C1234567", discount=40, popularity=99)
        assert scorer.score(listing, "electronics") == 100

    def test_discount_sub_score(self, scorer):
        breakdown = scorer.components(_listing(discount=30, popularity=87), "electronics")
        assert breakdown.discount == 75
        assert breakdown.category == 100
        assert breakdown.rating == 0

    def test_discount_above_ceiling_is_clamped(self, scorer):
        breakdown = scorer.components(_listing(discount=90), "electronics")
        assert breakdown.discount == 100

    def test_category_weights(self, scorer):
        listing = _listing(discount=20, popularity=10)
        scores = {category: scorer.score(listing, category) for category in
                  ("electronics", "home", "sports", "toys", "other")}
        assert scores["electronics"] > scores["home"] > scores["sports"] > scores["toys"] > scores["other"]

    def test_unknown_category_uses_other_weight(self, scorer):
        listing = _listing(discount=20, popularity=10)
        assert scorer.score(listing, "garden") == scorer.score(listing, "other")

    def test_popularity_is_log_scaled(self, scorer):
        profile = scorer.profile_for("community")
        assert DealScorer.popularity_score(99, profile) == pytest.approx(100.0)
        assert DealScorer.popularity_score(9, profile) == pytest.approx(50.0)
        assert DealScorer.popularity_score(10_000, profile) == 100.0

    def test_score_range(self, scorer):
        for discount, popularity in ((0, 0), (100, 100_000), (15, 3), (55, 40)):
            listing = _listing(discount=discount, popularity=popularity)
            assert 0 <= scorer.score(listing, "other") <= 100

    def test_deterministic(self, scorer):
        listing = _listing(discount=33, popularity=41)
        assert scorer.score(listing, "home") == scorer.score(listing, "home")


class TestMarketplaceProfile:
    """Tests for the marketplace (rating and review based) profile."""

    def _marketplace(self, **overrides) -> CandidateListing:
        fields = dict(
            listing_id="B09XYZ1234",
            item_id="B09XYZ1234",
            source="Amazon Mais Vendidos Cozinha",
            source_kind="marketplace",
            discount=20,
            rating=5.0,
            popularity=5000,
        )
        fields.update(overrides)
        return _listing(**fields)

    def test_weighted_sum(self, scorer):
        # 50*0.30 + 100*0.25 + 100*0.20 + 80*0.15
        assert scorer.score(self._marketplace(), "home") == 72

    def test_source_bonus_for_high_intent(self, scorer):
        assert scorer.score(self._marketplace(high_intent=True), "home") == 82

    def test_rating_floor(self, scorer):
        breakdown = scorer.components(self._marketplace(rating=2.5), "home")
        assert breakdown.rating == 0
        breakdown = scorer.components(self._marketplace(rating=4.0), "home")
        assert breakdown.rating == pytest.approx(50.0)

    def test_review_saturation(self, scorer):
        profile = scorer.profile_for("marketplace")
        assert DealScorer.popularity_score(5000, profile) == pytest.approx(100.0)
        assert DealScorer.popularity_score(1, profile) == 0.0
        assert DealScorer.popularity_score(250_000, profile) == 100.0

    def test_other_weight_lower_than_community(self, scorer):
        breakdown = scorer.components(self._marketplace(), "other")
        assert breakdown.category == 40

    def test_unknown_kind_uses_default_profile(self, scorer):
        assert scorer.profile_for("forum") is scorer.profile_for("community")


class TestScoringProfile:
    """Tests for ScoringProfile validation and configuration."""

    def test_weights_must_not_exceed_one(self):
        with pytest.raises(ValidationError, match="sum to <= 1.0"):
            ScoringProfile(discount_weight=0.6, popularity_weight=0.6)

    def test_unknown_popularity_signal(self):
        with pytest.raises(ValidationError, match="popularity_signal"):
            ScoringProfile(popularity_signal="likes")

    def test_custom_profiles_from_config(self):
        config = DiscoveryConfig(
            SCORING_PROFILES={"community": ScoringProfile(discount_weight=1.0, popularity_weight=0,
                                                          category_weight=0)}
        )
        scorer = DealScorer.from_config(config)
        assert scorer.score(_listing(discount=20), "electronics") == 50

    def test_requires_a_profile(self):
        with pytest.raises(ValueError):
            DealScorer({})

    def test_breakdown_as_dict(self, scorer):
        data = scorer.components(_listing(discount=30, popularity=87), "electronics").as_dict()
        assert set(data) == {"discount", "popularity", "rating", "category", "bonus", "score"}
        assert data["discount"] == 75.0

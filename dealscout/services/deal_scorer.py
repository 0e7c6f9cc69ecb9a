"""Composite deal-quality scoring.

The score (0-100) is a weighted sum of normalized sub-scores plus flat
bonuses, capped at 100:

    - discount:   discount / discount_ceiling, 40% off earns the full 100
    - popularity: log-scaled community upvotes or review count
    - rating:     star rating above the rating floor (3.0 -> 0, 5.0 -> 100)
    - category:   fixed weight per canonical category
    - bonuses:    high-intent source (deals feed), known marketplace item id

Weights and signals come from a ScoringProfile chosen by the listing's
source kind, so community and marketplace listings are each scored with the
signals their pages actually carry. Scores are pure functions of the listing
fields and the profile.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

import structlog

from dealscout.config import DiscoveryConfig, ScoringProfile
from dealscout.scrapers.base import CandidateListing
from dealscout.scrapers.utils.normalizer import OTHER_CATEGORY

logger = structlog.get_logger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(value, high))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ScoreBreakdown:
    """Sub-scores (each 0-100) and bonuses behind one deal score."""

    discount: float
    popularity: float
    rating: float
    category: float
    bonus: float
    score: int

    def as_dict(self) -> Dict[str, float]:
        return {
            "discount": round(self.discount, 1),
            "popularity": round(self.popularity, 1),
            "rating": round(self.rating, 1),
            "category": round(self.category, 1),
            "bonus": round(self.bonus, 1),
            "score": self.score,
        }


class DealScorer:
    """Scores listings with the profile registered for their source kind."""

    def __init__(self, profiles: Dict[str, ScoringProfile], default_kind: str = "community"):
        """Initialize scorer.

        Args:
            profiles: Scoring profiles keyed by source kind
            default_kind: Profile used for unknown source kinds
        """
        if not profiles:
            raise ValueError("at least one scoring profile is required")
        self.profiles = dict(profiles)
        self.default_kind = default_kind if default_kind in self.profiles else next(iter(self.profiles))

    @classmethod
    def from_config(cls, config: DiscoveryConfig) -> "DealScorer":
        return cls(config.SCORING_PROFILES)

    def profile_for(self, source_kind: str) -> ScoringProfile:
        return self.profiles.get(source_kind) or self.profiles[self.default_kind]

    @staticmethod
    def popularity_score(popularity: int, profile: ScoringProfile) -> float:
        """Log-scaled popularity sub-score.

        'upvotes' reaches 100 at ~99 votes; 'reviews' reaches 100 at
        profile.review_saturation reviews.
        """
        count = max(popularity, 1)
        if profile.popularity_signal == "reviews":
            saturation = max(profile.review_saturation, 2)
            return _clamp(math.log10(count) / math.log10(saturation) * 100)
        return _clamp(math.log10(count + 1) / 2 * 100)

    def components(
        self,
        listing: CandidateListing,
        category: str,
        profile: Optional[ScoringProfile] = None,
    ) -> ScoreBreakdown:
        """Compute every sub-score and the final score for a listing.

        Args:
            listing: Candidate listing
            category: Canonical category of the listing
            profile: Override profile; chosen from listing.source_kind otherwise

        Returns:
            ScoreBreakdown with the integer score in [0, 100]
        """
        profile = profile or self.profile_for(listing.source_kind)

        ceiling = profile.discount_ceiling if profile.discount_ceiling > 0 else 100.0
        discount_score = _clamp(listing.discount / ceiling * 100)
        popularity_score = self.popularity_score(listing.popularity, profile)

        rating_span = 5.0 - profile.rating_floor
        rating_score = (
            _clamp((listing.rating - profile.rating_floor) / rating_span * 100)
            if rating_span > 0
            else 0.0
        )

        weights = profile.category_weights
        category_score = _clamp(float(weights.get(category, weights.get(OTHER_CATEGORY, 0))))

        bonus = 0.0
        if listing.high_intent:
            bonus += profile.source_bonus
        if listing.item_id:
            bonus += profile.item_id_bonus

        total = (
            discount_score * profile.discount_weight
            + popularity_score * profile.popularity_weight
            + rating_score * profile.rating_weight
            + category_score * profile.category_weight
            + bonus
        )
        score = _round_half_up(_clamp(total))

        return ScoreBreakdown(
            discount=discount_score,
            popularity=popularity_score,
            rating=rating_score,
            category=category_score,
            bonus=bonus,
            score=score,
        )

    def score(self, listing: CandidateListing, category: str) -> int:
        """Deal score in [0, 100] for a listing in a canonical category."""
        return self.components(listing, category).score

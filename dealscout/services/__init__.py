"""Scoring, aggregation and store hand-off services."""

from .aggregator import (
    DEFAULT_LIMIT,
    AggregationResult,
    QualityThresholds,
    aggregate,
    run_aggregation,
)
from .deal_scorer import DealScorer, ScoreBreakdown
from .product_sync import InMemoryDocumentStore, ProductSyncService, SyncStats


__all__ = [
    "DEFAULT_LIMIT",
    "AggregationResult",
    "QualityThresholds",
    "aggregate",
    "run_aggregation",
    "DealScorer",
    "ScoreBreakdown",
    "InMemoryDocumentStore",
    "ProductSyncService",
    "SyncStats",
]

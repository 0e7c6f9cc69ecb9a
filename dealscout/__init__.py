"""dealscout: discover, score and rank marketplace deals from aggregator sites."""

__version__ = "0.1.0"

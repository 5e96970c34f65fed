"""Ingestion layer.

This package turns broker messages into repository writes and observer
broadcasts: topic routing, event classification and location sampling.
"""

__all__: list[str] = []

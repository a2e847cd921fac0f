"""
Batch fetching module for Stayfinder.

Provides bounded-concurrency detail fetches with retry and backoff.
"""

from .batch_fetcher import BatchFetcher, compute_backoff_delay

__all__ = ['BatchFetcher', 'compute_backoff_delay']

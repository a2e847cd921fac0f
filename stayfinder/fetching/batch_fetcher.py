"""
Batch detail fetcher with bounded concurrency and per-listing retry.

Implements exponential backoff with jitter for transient provider failures and
keeps results in input order regardless of completion order.
"""

import asyncio
import logging
import math
import random
from typing import Awaitable, Callable, Iterator, List, Optional

from stayfinder.config.settings import BatchFetchConfig
from stayfinder.errors import AppError, InvalidResponseError, aggregate_errors, is_transient
from stayfinder.models import DerivedRecord, FetchOutcome
from stayfinder.providers.base import DetailFetch


logger = logging.getLogger(__name__)

MIN_BACKOFF_DELAY_MS = 100


def compute_backoff_delay(
    attempt: int,
    base_delay_ms: float,
    jitter_factor: float = 0.1,
    rng: Optional[random.Random] = None
) -> int:
    """
    Calculate the delay before retrying after a failed attempt.

    The exponential part is base_delay_ms * 2^(attempt - 1). The delay is drawn
    uniformly from exponential +/- (exponential * jitter_factor), floored, and
    never less than 100ms.

    Args:
        attempt: The attempt that just failed (1-indexed)
        base_delay_ms: Delay before the first retry, before jitter
        jitter_factor: Fraction of the exponential delay used as jitter window
        rng: Random source (defaults to the module-level generator)

    Returns:
        Delay in whole milliseconds
    """
    exponential = base_delay_ms * (2 ** (attempt - 1))
    jitter = exponential * jitter_factor
    low = exponential - jitter
    high = exponential + jitter
    draw = (rng or random).random()
    return max(MIN_BACKOFF_DELAY_MS, math.floor(low + draw * (high - low)))


class BatchFetcher:
    """
    Fetches detail records for many listing ids through a DetailFetch provider.

    At most config.max_concurrency fetches are in flight. Workers share one
    index iterator and write into a pre-sized slot list, so the output order
    always matches the input order. A permanent failure for one listing does
    not stop the others.

    Attributes:
        detail_fetch: Provider used for single-listing fetches
        config: Concurrency and retry configuration
    """

    def __init__(
        self,
        detail_fetch: DetailFetch,
        config: Optional[BatchFetchConfig] = None,
        *,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the batch fetcher.

        Args:
            detail_fetch: Provider used for single-listing fetches
            config: Concurrency and retry configuration (default: BatchFetchConfig())
            sleep: Awaitable sleep taking seconds (default: asyncio.sleep)
            rng: Random source for backoff jitter
        """
        self.detail_fetch = detail_fetch
        self.config = config or BatchFetchConfig()
        self._sleep = sleep
        self._rng = rng

    async def fetch_all(
        self,
        listing_ids: List[str],
        timeout_ms: Optional[int] = None
    ) -> List[DerivedRecord]:
        """
        Fetch detail records for every listing id.

        Args:
            listing_ids: Listing ids in the order results should be returned
            timeout_ms: Per-call timeout forwarded to the provider

        Returns:
            One record per listing id, in input order

        Raises:
            InvalidResponseError: If any listing failed; the message combines
                every failure message
        """
        outcomes = await self.fetch_outcomes(listing_ids, timeout_ms)

        errors = [o.error for o in outcomes if o.error is not None]
        if errors:
            logger.error(f"{len(errors)}/{len(outcomes)} listing fetch(es) failed")
            raise aggregate_errors(errors)

        return [o.record for o in outcomes]

    async def fetch_outcomes(
        self,
        listing_ids: List[str],
        timeout_ms: Optional[int] = None
    ) -> List[FetchOutcome]:
        """
        Fetch every listing id and return the per-slot outcomes in input order.

        Never raises AppError; failures are recorded on the outcome. Any other
        exception cancels the remaining workers and propagates.
        """
        if not listing_ids:
            return []

        slots: List[Optional[FetchOutcome]] = [None] * len(listing_ids)
        cursor = iter(range(len(listing_ids)))
        worker_count = min(self.config.max_concurrency, len(listing_ids))

        logger.info(f"Fetching {len(listing_ids)} listing(s) with {worker_count} worker(s)")

        workers = [
            asyncio.ensure_future(self._worker(cursor, listing_ids, slots, timeout_ms))
            for _ in range(worker_count)
        ]
        try:
            await asyncio.gather(*workers)
        except Exception:
            # A non-AppError from a provider is a bug; stop the other workers
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        return slots

    async def fetch_with_retry(
        self,
        listing_id: str,
        timeout_ms: Optional[int] = None
    ) -> FetchOutcome:
        """
        Fetch one listing, retrying transient failures with backoff.

        Makes at most config.max_retries attempts. Permanent errors stop
        immediately.

        Returns:
            Outcome holding the record, or the last error seen
        """
        max_retries = self.config.max_retries
        last_error: Optional[AppError] = None
        attempt = 0

        for attempt in range(1, max_retries + 1):
            try:
                record = await self.detail_fetch.fetch(listing_id, timeout_ms)
            except AppError as e:
                last_error = e
            else:
                if attempt > 1:
                    logger.info(f"Listing {listing_id} succeeded on attempt {attempt}")
                return FetchOutcome(listing_id=listing_id, record=record, attempts=attempt)

            if not is_transient(last_error) or attempt == max_retries:
                logger.error(
                    f"Listing {listing_id} failed after {attempt}/{max_retries} attempt(s): "
                    f"{last_error.kind}: {last_error.message}"
                )
                break

            delay_ms = compute_backoff_delay(
                attempt,
                self.config.base_delay_ms,
                self.config.jitter_factor,
                self._rng,
            )
            logger.info(
                f"Listing {listing_id} attempt {attempt}/{max_retries} failed "
                f"({last_error.kind}); retrying in {delay_ms}ms"
            )
            await self._backoff(delay_ms / 1000)

        if last_error is None:
            last_error = InvalidResponseError(f"Unknown detail error for listingId={listing_id}")

        return FetchOutcome(listing_id=listing_id, error=last_error, attempts=attempt)

    async def _worker(
        self,
        cursor: Iterator[int],
        listing_ids: List[str],
        slots: List[Optional[FetchOutcome]],
        timeout_ms: Optional[int]
    ) -> None:
        # next() on the shared iterator runs without yielding, so no two
        # workers can claim the same index
        for index in cursor:
            slots[index] = await self.fetch_with_retry(listing_ids[index], timeout_ms)

    async def _backoff(self, seconds: float) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
        else:
            await asyncio.sleep(seconds)

import json
import logging
import time
from typing import Any, Callable, List, Optional

import httpx

from src.monitoring.metrics import BATCH_SIZE, BIDS_CACHED, BIDS_DISCARDED, STORE_CALLS, STORE_LATENCY
from src.videocache.config import CacheConfig, config
from src.videocache.errors import CountMismatchError
from src.videocache.response import ResponseAdapter
from src.videocache.schema import BatchEntry, Bid, StoreResult
from src.videocache.translator import to_storage_request

logger = logging.getLogger(__name__)


class VideoCacheStore:
    """
    Stores batches of video bids on the cache server and hands the ones that
    got a cache id to the auction.

    One store call per batch, no retries. A failed or inconsistent call
    discards the whole batch; a rejected key discards only its own bid.

    Attributes:
        client (httpx.AsyncClient): Transport for store calls.
        index: Auction lookup used for payload timestamps.
        add_bid_to_auction (Callable): Acceptance path for finalized bids.
        scheduler: Runs dispatched flushes as independent tasks.
        conf (CacheConfig): Cache endpoint and payload options.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        add_bid_to_auction: Callable[[Any, Bid], Any],
        index: Any = None,
        scheduler: Any = None,
        conf: Optional[CacheConfig] = None,
    ):
        self.client = client
        self.add_bid_to_auction = add_bid_to_auction
        self.index = index
        self.scheduler = scheduler
        self.conf = conf or config.cache

    def get_cache_url(self, uuid: str) -> str:
        """Retrieval URL for a stored VAST."""
        return f"{self.conf.url}?uuid={uuid}"

    async def store(self, bids: List[Bid]) -> StoreResult:
        """Store the VAST of every bid in one call. ids line up with bids."""
        start_time = time.perf_counter()
        try:
            request_data = {"puts": [to_storage_request(bid, self.index, self.conf) for bid in bids]}
            response = await self.client.post(
                self.conf.url,
                content=json.dumps(request_data),
                headers={"Content-Type": "text/plain"},
                timeout=self.conf.timeout,
            )
        except Exception as e:
            # Closed client, invalid URL or untranslatable bid
            return ResponseAdapter.from_exception(e)
        finally:
            STORE_LATENCY.observe(time.perf_counter() - start_time)
        return ResponseAdapter.from_response(response)

    async def store_batch(self, batch: List[BatchEntry]) -> List[Bid]:
        """
        Store a batch and admit every bid that received a cache id.

        Returns:
            List[Bid]: The bids passed to the acceptance path, in batch order.
        """
        bids = [entry.bidResponse for entry in batch]
        BATCH_SIZE.observe(len(batch))
        result = await self.store(bids)

        if not result.ok:
            STORE_CALLS.labels(outcome="error").inc()
            BIDS_DISCARDED.labels(reason="store_error").inc(len(batch))
            logger.error(
                f"Failed to save to the video cache: {result.error}. Video bids will be discarded: "
                f"{[bid.adId for bid in bids]}"
            )
            return []

        if len(result.ids) != len(batch):
            STORE_CALLS.labels(outcome="count_mismatch").inc()
            BIDS_DISCARDED.labels(reason="count_mismatch").inc(len(batch))
            logger.error(str(CountMismatchError(len(batch), len(result.ids))))
            return []

        STORE_CALLS.labels(outcome="ok").inc()
        admitted = []
        for entry, cache_id in zip(batch, result.ids):
            bid = entry.bidResponse
            if cache_id["uuid"] == "":
                BIDS_DISCARDED.labels(reason="rejected_key").inc()
                logger.warning(
                    "Supplied video cache key was already in use by Prebid Cache; "
                    f"caching attempt was rejected. Video bid {bid.adId} must be discarded."
                )
                continue

            bid.videoCacheKey = cache_id["uuid"]
            if not bid.vastUrl:
                bid.vastUrl = self.get_cache_url(bid.videoCacheKey)
            self.add_bid_to_auction(entry.auctionInstance, bid)
            entry.afterBidAdded()
            admitted.append(bid)

        BIDS_CACHED.inc(len(admitted))
        return admitted

    def dispatch(self, batch: List[BatchEntry]):
        """Start store_batch for one batch without waiting for it."""
        return self.scheduler.spawn(self.store_batch(batch))

import logging
from typing import Any, Callable, Optional

import httpx

from src.videocache.auction import AuctionManager, add_bid_to_auction
from src.videocache.batcher import AsyncioScheduler, Batcher
from src.videocache.config import EngineConfig, config
from src.videocache.local_cache import LocalVastCache
from src.videocache.schema import Bid
from src.videocache.store import VideoCacheStore

logger = logging.getLogger(__name__)


class VideoCacheEngine:
    """
    Core orchestration layer for video bid caching.

    Responsibilities:
        1. Batching (debounced, size-bounded store calls)
        2. Remote storage and cache id attribution
        3. Local data URI fallback
        4. Local cache cleanup on auction expiry

    Attributes:
        auction_manager (AuctionManager): Owns auctions and expiry notifications.
        store (VideoCacheStore): Remote cache client.
        batcher (Batcher): Groups bids into store calls.
        local_cache (LocalVastCache): In-process VAST store.
    """

    def __init__(
        self,
        auction_manager: Optional[AuctionManager] = None,
        engine_config: Optional[EngineConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        scheduler: Any = None,
        accept: Callable[[Any, Bid], Any] = add_bid_to_auction,
    ):
        self.conf = engine_config or config
        cache_conf = self.conf.cache
        logger.info(
            f"Initializing VideoCacheEngine url={cache_conf.url!r} use_local={cache_conf.use_local} "
            f"batch_size={cache_conf.effective_batch_size} batch_timeout={cache_conf.effective_batch_timeout}ms"
        )

        self.auction_manager = auction_manager or AuctionManager()
        self.scheduler = scheduler or AsyncioScheduler()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=cache_conf.timeout)
        self.accept = accept

        self.store = VideoCacheStore(
            client=self.client,
            add_bid_to_auction=accept,
            index=self.auction_manager.index,
            scheduler=self.scheduler,
            conf=cache_conf,
        )
        self.batcher = Batcher(
            flush=self.store.dispatch,
            scheduler=self.scheduler,
            batch_size=cache_conf.effective_batch_size,
            batch_timeout=cache_conf.effective_batch_timeout,
        )
        self.local_cache = LocalVastCache(client=self.client)

        self._unsubscribe_expiry = None
        if cache_conf.use_local:
            # Drop data URIs that can no longer be rendered
            self._unsubscribe_expiry = self.auction_manager.on_expiry(self.local_cache.handle_auction_expiry)

    def cache_video_bid(self, auction: Any, bid: Bid, on_done: Callable[[], Any]):
        """
        Route a video bid to the local cache or the batched remote store.
        on_done fires once the bid is in its auction.
        """
        if self.conf.cache.use_local:
            self.local_cache.store_locally(bid)
            self.accept(auction, bid)
            on_done()
            return
        self.batcher.submit(auction, bid, on_done)

    def get_cache_url(self, uuid: str) -> str:
        return self.store.get_cache_url(uuid)

    async def resolve_via_ad_server(self, ad_tag_url: str) -> Optional[str]:
        return await self.local_cache.resolve_via_ad_server(ad_tag_url)

    async def aclose(self):
        """Flush queued bids, wait for in-flight store calls, then cleanup resources."""
        if self.batcher.pending:
            logger.info(f"Flushing {self.batcher.pending} queued video bids before shutdown")
        self.batcher.flush_pending()
        drain = getattr(self.scheduler, "drain", None)
        if drain is not None:
            await drain()

        if self._unsubscribe_expiry is not None:
            self._unsubscribe_expiry()
            self._unsubscribe_expiry = None
        if self._owns_client:
            await self.client.aclose()

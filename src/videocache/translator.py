from typing import Any, Dict, Optional

from src.videocache.config import CacheConfig, config
from src.videocache.schema import Bid
from src.videocache.vast import wrap_uri

# Fixed margin so the cached VAST outlives the bid that points at it
TTL_BUFFER_SECONDS = 15


def get_vast_value(bid: Bid) -> str:
    """The VAST to cache for a bid: its inline XML, else a wrapper around vastUrl."""
    return bid.vastXml if bid.vastXml else wrap_uri(bid.vastUrl, bid.vastImpUrl)


def to_storage_request(bid: Bid, index: Any = None, conf: Optional[CacheConfig] = None) -> Dict[str, Any]:
    """
    Build the Prebid Cache "put" payload for one bid.

    Args:
        bid (Bid): Bid to store.
        index: Anything with get_auction(bid) -> auction or None.
        conf (CacheConfig): Defaults to the global cache config.
    """
    conf = conf or config.cache
    ttl = float(bid.ttl)
    payload: Dict[str, Any] = {
        "type": "xml",
        "value": get_vast_value(bid),
        # Whole seconds stay integers on the wire
        "ttlseconds": (int(ttl) if ttl.is_integer() else ttl) + TTL_BUFFER_SECONDS,
    }

    if conf.vasttrack:
        payload["bidder"] = bid.bidder
        payload["bidid"] = bid.requestId
        payload["aid"] = bid.auctionId

    auction = index.get_auction(bid) if index is not None else None
    if auction is not None:
        payload["timestamp"] = auction.getAuctionStart()

    if isinstance(bid.customCacheKey, str) and bid.customCacheKey != "":
        payload["key"] = bid.customCacheKey

    return payload

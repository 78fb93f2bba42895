from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Union


@dataclass(slots=True)
class Bid:
    """
    A video bid as received from a bidder.
    The auction layer owns it; the cache only writes videoCacheKey and vastUrl.
    """

    auctionId: str
    requestId: str
    bidder: str
    adId: str
    ttl: int
    vastXml: Optional[str] = None
    vastUrl: Optional[str] = None
    vastImpUrl: Optional[Union[str, List[str]]] = None
    customCacheKey: Optional[str] = None
    videoCacheKey: Optional[str] = None


@dataclass(slots=True)
class BatchEntry:
    """
    One bid waiting for the next store call, together with the auction it
    belongs to and the callback fired once it has been added to that auction.
    """

    auctionInstance: Any
    bidResponse: Bid
    afterBidAdded: Callable[[], Any]


@dataclass(slots=True)
class StoreResult:
    """
    Outcome of a single store call: either the cache ids (one
    {"uuid": ...} object per stored bid) or the error that voided the call.
    """

    ids: List[dict] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

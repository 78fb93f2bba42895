import logging
import time
from typing import Callable, Dict, List, Optional

from src.videocache.schema import Bid

logger = logging.getLogger(__name__)


class Auction:
    """A single auction: its start time and the bids admitted to it."""

    def __init__(self, auction_id: str, auction_start: Optional[int] = None):
        self.auctionId = auction_id
        # Epoch milliseconds
        self.auctionStart = auction_start if auction_start is not None else int(time.time() * 1000)
        self._bids_received: List[Bid] = []

    def getAuctionStart(self) -> int:
        return self.auctionStart

    def getBidsReceived(self) -> List[Bid]:
        return list(self._bids_received)

    def add_bid_received(self, bid: Bid):
        self._bids_received.append(bid)


class AuctionIndex:
    """Resolves the auction a bid belongs to."""

    def __init__(self, auctions: Dict[str, Auction]):
        self._auctions = auctions

    def get_auction(self, bid: Bid) -> Optional[Auction]:
        return self._auctions.get(bid.auctionId)


class AuctionManager:
    """
    In-memory auction lifecycle: creation, bid admission and expiry.
    Expiry handlers run synchronously, in subscription order.
    """

    def __init__(self):
        self._auctions: Dict[str, Auction] = {}
        self._expiry_handlers: List[Callable[[Auction], None]] = []
        self.index = AuctionIndex(self._auctions)

    def create_auction(self, auction_id: str, auction_start: Optional[int] = None) -> Auction:
        auction = Auction(auction_id, auction_start)
        self._auctions[auction_id] = auction
        return auction

    def get_or_create(self, auction_id: str) -> Auction:
        auction = self._auctions.get(auction_id)
        if auction is None:
            auction = self.create_auction(auction_id)
        return auction

    def get(self, auction_id: str) -> Optional[Auction]:
        return self._auctions.get(auction_id)

    def on_expiry(self, handler: Callable[[Auction], None]) -> Callable[[], None]:
        """Subscribe to auction expiry. Returns an unsubscribe function."""
        self._expiry_handlers.append(handler)

        def unsubscribe():
            if handler in self._expiry_handlers:
                self._expiry_handlers.remove(handler)

        return unsubscribe

    def expire(self, auction_id: str) -> bool:
        """Drop an auction and notify every expiry handler. False if unknown."""
        auction = self._auctions.pop(auction_id, None)
        if auction is None:
            return False
        logger.debug(f"Auction {auction_id} expired with {len(auction.getBidsReceived())} bids")
        for handler in list(self._expiry_handlers):
            handler(auction)
        return True


def add_bid_to_auction(auction: Auction, bid: Bid):
    """Admit a finalized bid into its auction's result set."""
    auction.add_bid_received(bid)

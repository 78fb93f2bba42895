import base64
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

import httpx

from src.monitoring.metrics import LOCAL_ENTRIES, LOCAL_RESOLVES
from src.videocache.errors import FetchError
from src.videocache.schema import Bid
from src.videocache.translator import get_vast_value

logger = logging.getLogger(__name__)

# Placeholder the ad server's wrapper carries in place of the bid's VAST
LOCAL_CACHE_MOCK_URL = "https://local.prebid.org/cache?bidder="


def local_cache_key(bidder: str, ad_id: str) -> str:
    return f"{bidder}_{ad_id}"


def _first_param(params: Dict[str, list], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


class LocalVastCache:
    """
    Keeps bid VAST in process as base64 data URIs so nothing is sent to a
    cache server. Entries live until their auction expires.

    Attributes:
        client (httpx.AsyncClient): Used to fetch the ad server's wrapper.
        mock_url (str): Prefix of the placeholder URL swapped for a data URI.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, mock_url: str = LOCAL_CACHE_MOCK_URL):
        self.client = client
        self.mock_url = mock_url
        self._vasts: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._vasts)

    def __contains__(self, key: str) -> bool:
        return key in self._vasts

    def get(self, bidder: str, ad_id: str) -> Optional[str]:
        return self._vasts.get(local_cache_key(bidder, ad_id))

    def store_locally(self, bid: Bid) -> str:
        """
        Encode the bid's VAST as a data URI, point bid.vastUrl at it and
        remember it under bidder_adId. A later store for the same key wins.
        """
        vast_value = get_vast_value(bid)
        data_uri = "data:text/xml;base64," + base64.b64encode(vast_value.encode("utf-8")).decode("ascii")
        bid.vastUrl = data_uri
        key = local_cache_key(bid.bidder, bid.adId)
        if key not in self._vasts:
            LOCAL_ENTRIES.inc()
        self._vasts[key] = data_uri
        return data_uri

    async def resolve_via_ad_server(self, ad_tag_url: str) -> Optional[str]:
        """
        Fetch the ad server's wrapper VAST for an ad tag and splice the locally
        stored bid VAST into it.

        The bidder and ad id come from hb_bidder / hb_adid in the tag's
        cust_params. The first occurrence of the bidder's placeholder URL is
        replaced. When no entry is stored the wrapper is returned unchanged.

        Returns:
            Optional[str]: The combined VAST, or None if the URL is malformed or
            the fetch failed.
        """
        try:
            cust_params = parse_qs(_first_param(parse_qs(urlsplit(ad_tag_url).query), "cust_params") or "")
        except ValueError as e:
            LOCAL_RESOLVES.labels(outcome="bad_url").inc()
            logger.error(f"Malformed ad tag URL {ad_tag_url!r}: {e}")
            return None
        hb_bidder = _first_param(cust_params, "hb_bidder")
        hb_adid = _first_param(cust_params, "hb_adid")

        try:
            wrapper = await self._fetch_wrapper(ad_tag_url)
        except FetchError as e:
            LOCAL_RESOLVES.labels(outcome="fetch_error").inc()
            logger.error(f"Unable to fetch valid response from the ad server: {e}")
            return None

        data_uri = self._vasts.get(local_cache_key(hb_bidder, hb_adid))
        if data_uri is None:
            LOCAL_RESOLVES.labels(outcome="missing").inc()
            logger.warning(f"No local VAST for bidder={hb_bidder} adId={hb_adid}; returning the ad server wrapper as is")
            return wrapper

        LOCAL_RESOLVES.labels(outcome="ok").inc()
        return wrapper.replace(self.mock_url + str(hb_bidder), data_uri, 1)

    async def _fetch_wrapper(self, url: str) -> str:
        client = self.client or httpx.AsyncClient()
        try:
            response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e
        finally:
            if self.client is None:
                await client.aclose()
        if not response.is_success:
            raise FetchError(f"HTTP {response.status_code}")
        return response.text

    def handle_auction_expiry(self, auction: Any):
        """Forget the VAST of every bid that belonged to an expired auction."""
        for bid in auction.getBidsReceived():
            if self._vasts.pop(local_cache_key(bid.bidder, bid.adId), None) is not None:
                LOCAL_ENTRIES.dec()

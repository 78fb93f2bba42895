import pytest
from dataclasses import replace
from unittest.mock import MagicMock

from src.videocache.config import config
from src.videocache.schema import Bid
from src.videocache.translator import TTL_BUFFER_SECONDS, get_vast_value, to_storage_request
from src.videocache.vast import wrap_uri


@pytest.fixture
def url_bid():
    return Bid(
        auctionId="auc_1", requestId="req_1", bidder="nexverse", adId="ad_1",
        ttl=60, vastUrl="http://x/vast.xml",
    )


def test_url_bid_end_to_end(url_bid):
    """vastUrl bids are wrapped and get the 15s TTL buffer."""
    payload = to_storage_request(url_bid)
    assert payload["type"] == "xml"
    assert payload["value"] == wrap_uri("http://x/vast.xml")
    assert payload["ttlseconds"] == 75


def test_vast_xml_takes_precedence(url_bid):
    url_bid.vastXml = "<VAST version=\"4.0\"></VAST>"
    assert to_storage_request(url_bid)["value"] == "<VAST version=\"4.0\"></VAST>"


def test_empty_vast_xml_falls_back_to_url(url_bid):
    url_bid.vastXml = ""
    assert get_vast_value(url_bid) == wrap_uri("http://x/vast.xml")


def test_impression_trackers_are_wrapped(url_bid):
    url_bid.vastImpUrl = ["http://imp/1", "http://imp/2"]
    assert to_storage_request(url_bid)["value"] == wrap_uri("http://x/vast.xml", ["http://imp/1", "http://imp/2"])


@pytest.mark.parametrize("ttl", [0, 1, 30, 300, "45", 60.0])
def test_ttl_buffer(url_bid, ttl):
    url_bid.ttl = ttl
    ttlseconds = to_storage_request(url_bid)["ttlseconds"]
    assert ttlseconds == float(ttl) + TTL_BUFFER_SECONDS
    assert isinstance(ttlseconds, int)


@pytest.mark.parametrize("ttl,expected", [(30.5, 45.5), ("0.25", 15.25)])
def test_fractional_ttl_is_kept(url_bid, ttl, expected):
    url_bid.ttl = ttl
    assert to_storage_request(url_bid)["ttlseconds"] == expected


def test_minimal_payload_has_no_optional_fields(url_bid):
    payload = to_storage_request(url_bid)
    assert set(payload) == {"type", "value", "ttlseconds"}


def test_vasttrack_adds_tracking_fields(url_bid):
    conf = replace(config.cache, vasttrack=True)
    payload = to_storage_request(url_bid, conf=conf)
    assert payload["bidder"] == "nexverse"
    assert payload["bidid"] == "req_1"
    assert payload["aid"] == "auc_1"


def test_auction_timestamp(url_bid):
    auction = MagicMock()
    auction.getAuctionStart.return_value = 1700000000000
    index = MagicMock()
    index.get_auction.return_value = auction

    payload = to_storage_request(url_bid, index=index)
    assert payload["timestamp"] == 1700000000000
    index.get_auction.assert_called_once_with(url_bid)


def test_unresolved_auction_has_no_timestamp(url_bid):
    index = MagicMock()
    index.get_auction.return_value = None
    assert "timestamp" not in to_storage_request(url_bid, index=index)


def test_custom_cache_key(url_bid):
    url_bid.customCacheKey = "my-key"
    assert to_storage_request(url_bid)["key"] == "my-key"


def test_empty_custom_cache_key_is_ignored(url_bid):
    url_bid.customCacheKey = ""
    assert "key" not in to_storage_request(url_bid)

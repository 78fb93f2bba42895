class VideoCacheError(Exception):
    """Base class for failures of the video cache. None of them are fatal."""


class ParseError(VideoCacheError):
    """The cache server's response body is not valid JSON."""


class ProtocolError(VideoCacheError):
    """The response parsed but does not follow the cache protocol."""


class TransportError(VideoCacheError):
    """The store call failed at the network or HTTP level."""

    def __init__(self, status: str, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Error storing video ad in the cache: {status}: {body!r}")


class CountMismatchError(VideoCacheError):
    """The cache returned a different number of ids than bids were sent."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} cache IDs, got {actual} instead")


class FetchError(VideoCacheError):
    """The ad server's wrapper VAST could not be fetched."""

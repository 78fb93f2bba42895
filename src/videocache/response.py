import json
import logging

import httpx

from src.videocache.errors import ParseError, ProtocolError, TransportError
from src.videocache.schema import StoreResult

logger = logging.getLogger(__name__)


class ResponseAdapter:
    """
    Turns whatever came back from a store call into a StoreResult.
    Every failure mode yields an error and an empty id list.
    """

    @staticmethod
    def from_response(response: httpx.Response) -> StoreResult:
        if not response.is_success:
            return StoreResult(error=TransportError(str(response.status_code), response.text))

        try:
            body = json.loads(response.text)
        except ValueError as e:
            return StoreResult(error=ParseError(f"Invalid JSON from the cache server: {e}"))

        ids = body.get("responses") if isinstance(body, dict) else None
        if ids is None:
            return StoreResult(error=ProtocolError("The cache server didn't respond with a responses property."))

        if not isinstance(ids, list) or not all(
            isinstance(entry, dict) and isinstance(entry.get("uuid"), str) for entry in ids
        ):
            return StoreResult(error=ProtocolError("The cache server responded with malformed cache IDs."))

        return StoreResult(ids=ids)

    @staticmethod
    def from_exception(exc: Exception) -> StoreResult:
        status = type(exc).__name__
        logger.debug(f"Store call failed before a response: {status}: {exc}")
        return StoreResult(error=TransportError(status, str(exc)))

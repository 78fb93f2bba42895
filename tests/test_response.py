import httpx
import pytest

from src.videocache.errors import ParseError, ProtocolError, TransportError
from src.videocache.response import ResponseAdapter


def test_success():
    response = httpx.Response(200, json={"responses": [{"uuid": "a"}, {"uuid": ""}]})
    result = ResponseAdapter.from_response(response)
    assert result.ok
    assert result.ids == [{"uuid": "a"}, {"uuid": ""}]


def test_invalid_json_is_parse_error():
    result = ResponseAdapter.from_response(httpx.Response(200, text="not json"))
    assert isinstance(result.error, ParseError)
    assert result.ids == []


def test_missing_responses_is_protocol_error():
    result = ResponseAdapter.from_response(httpx.Response(200, json={"uuids": []}))
    assert isinstance(result.error, ProtocolError)
    assert "responses property" in str(result.error)
    assert result.ids == []


@pytest.mark.parametrize("body", [{"responses": [{"id": "x"}]}, {"responses": ["x"]}, {"responses": "x"}])
def test_malformed_ids_are_protocol_error(body):
    result = ResponseAdapter.from_response(httpx.Response(200, json=body))
    assert isinstance(result.error, ProtocolError)


def test_empty_responses_list_is_success():
    result = ResponseAdapter.from_response(httpx.Response(200, json={"responses": []}))
    assert result.ok
    assert result.ids == []


def test_http_error_status_is_transport_error():
    result = ResponseAdapter.from_response(httpx.Response(500, text="boom"))
    assert isinstance(result.error, TransportError)
    assert result.error.status == "500"
    assert "boom" in str(result.error)


def test_exception_is_transport_error():
    result = ResponseAdapter.from_exception(httpx.ConnectTimeout("timed out"))
    assert isinstance(result.error, TransportError)
    assert result.error.status == "ConnectTimeout"
    assert result.ids == []

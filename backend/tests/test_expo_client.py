from __future__ import annotations

import json

import httpx
import pytest

from app.core.errors import GatewayError
from app.services.expo_client import ExpoPushClient
from conftest import PUSH_URL, RECEIPTS_URL


def _client(handler, access_token=None) -> ExpoPushClient:
    return ExpoPushClient(
        push_url=PUSH_URL,
        receipts_url=RECEIPTS_URL,
        access_token=access_token,
        transport=httpx.MockTransport(handler),
    )


def _message(token: str) -> dict:
    return {"to": token, "title": "Hi", "body": "There", "data": {}, "sound": "default"}


def test_send_returns_tickets_and_sets_auth_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"status": "ok", "id": "abc"}]})

    response = _client(handler, access_token="secret-token").send([_message("ExponentPushToken[x]")])
    assert response.status_code == 200
    assert response.tickets == [{"status": "ok", "id": "abc"}]
    assert seen["auth"] == "Bearer secret-token"
    assert seen["body"][0]["sound"] == "default"


def test_send_without_access_token_omits_auth_header():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "authorization" not in request.headers
        return httpx.Response(200, json={"data": [{"status": "ok", "id": "abc"}]})

    _client(handler).send([_message("ExponentPushToken[x]")])


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"errors": []}),
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json={"errors": [{"code": "PUSH_TOO_MANY_EXPERIENCE_IDS"}]}),
        httpx.Response(200, json={"data": [{"status": "ok", "id": "a"}, {"status": "ok", "id": "b"}]}),
    ],
)
def test_send_raises_gateway_error_for_bad_responses(response):
    client = _client(lambda request: response)
    with pytest.raises(GatewayError):
        client.send([_message("ExponentPushToken[x]")])


def test_send_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayError) as excinfo:
        _client(handler).send([_message("ExponentPushToken[x]")])
    assert excinfo.value.http_status is None


def test_get_receipts_posts_ids_and_returns_mapping():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"ids": ["t1", "t2"]}
        return httpx.Response(
            200,
            json={"data": {"t1": {"status": "ok"}, "t2": {"status": "error", "details": {"error": "MessageTooBig"}}}},
        )

    receipts = _client(handler).get_receipts(["t1", "t2"])
    assert receipts["t1"] == {"status": "ok"}
    assert receipts["t2"]["details"]["error"] == "MessageTooBig"


def test_get_receipts_rejects_malformed_body():
    client = _client(lambda request: httpx.Response(200, json={"data": ["not", "a", "mapping"]}))
    with pytest.raises(GatewayError):
        client.get_receipts(["t1"])


def test_empty_inputs_make_no_requests():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        raise AssertionError("unexpected request")

    client = _client(handler)
    assert client.send([]).tickets == []
    assert client.get_receipts([]) == {}

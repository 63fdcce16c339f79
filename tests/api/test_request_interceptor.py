"""Request Interceptor — tests for the per-request lifecycle.

Tests cover:
    - HEAD short-circuit on public and private routes
    - Auth gate: missing/wrong token → 401, controller never called
    - Auth gate: accepted token → controller called once with token
    - Payload: path params, JSON body, form body, query, defaults
    - Payload: scalar JSON tops rejected with 400, arrays accepted
    - Error containment: sync/async raise → 500 empty, first response stands
    - Fallthrough: silent controller → 200 {}
    - Authorizer exceptions contained as 500
"""

import logging
from unittest.mock import ANY, AsyncMock, MagicMock

import pytest

from restapi_service.core.domain_types import RequestPayload

UNAUTHORIZED = {"error": "Token invalid or expired"}


def _accept_t(token):
    return token == "T"


# ─── METHOD_CHECK ────────────────────────────────────────────────

async def test_head_on_public_route_returns_empty_200(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("GET", "/items/:id", ctrl)])
    res = await client.head("/items/1")
    assert res.status_code == 200
    assert res.content == b""
    ctrl.assert_not_called()


async def test_head_on_private_route_skips_auth(make_client):
    ctrl = MagicMock(return_value=None)
    authorizer = MagicMock(return_value=False)
    client, _ = await make_client([("POST", "/secret", ctrl, True)], authorizer)
    res = await client.head("/secret")
    assert res.status_code == 200
    assert res.content == b""
    authorizer.assert_not_called()
    ctrl.assert_not_called()


# ─── AUTH_GATE ───────────────────────────────────────────────────

async def test_private_route_without_token_returns_401(make_client):
    ctrl = MagicMock(return_value=None)
    authorizer = MagicMock(side_effect=_accept_t)
    client, _ = await make_client([("GET", "/private/:id", ctrl, True)], authorizer)
    res = await client.get("/private/666")
    assert res.status_code == 401
    assert res.json() == UNAUTHORIZED
    authorizer.assert_called_once_with("undefined")
    ctrl.assert_not_called()


async def test_private_route_with_wrong_token_returns_401(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("GET", "/private/:id", ctrl, True)], _accept_t)
    res = await client.get("/private/666", headers={"auth-token": ""})
    assert res.status_code == 401
    assert res.json() == UNAUTHORIZED
    ctrl.assert_not_called()


async def test_async_authorizer_rejection_returns_401(make_client):
    ctrl = MagicMock(return_value=None)
    authorizer = AsyncMock(return_value=False)
    client, _ = await make_client([("GET", "/private", ctrl, True)], authorizer)
    res = await client.get("/private", headers={"auth-token": "T"})
    assert res.status_code == 401
    authorizer.assert_awaited_once_with("T")
    ctrl.assert_not_called()


async def test_private_route_with_valid_token_calls_controller(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("POST", "/items/:id", ctrl, True)], _accept_t)
    res = await client.post(
        "/items/5", headers={"auth-token": "T"}, json={"x": 1},
    )
    assert res.status_code == 200
    ctrl.assert_called_once_with(
        ANY, RequestPayload(params={"id": "5"}, payload={"x": 1}, query={}), "T",
    )


async def test_authorizer_exception_is_contained(make_client, caplog):
    ctrl = MagicMock(return_value=None)
    authorizer = MagicMock(side_effect=RuntimeError("auth backend down"))
    client, _ = await make_client(
        [("GET", "/private", ctrl, True)], authorizer, log_errors=True,
    )
    with caplog.at_level(logging.ERROR, logger="restapi_service"):
        res = await client.get("/private", headers={"auth-token": "T"})
    assert res.status_code == 500
    assert res.content == b""
    ctrl.assert_not_called()
    assert "auth backend down" in caplog.text


async def test_public_route_never_calls_authorizer(make_client):
    ctrl = MagicMock(return_value=None)
    authorizer = MagicMock(return_value=False)
    client, _ = await make_client([("GET", "/public", ctrl)], authorizer)
    res = await client.get("/public", headers={"auth-token": "T"})
    assert res.status_code == 200
    authorizer.assert_not_called()
    ctrl.assert_called_once_with(ANY, RequestPayload(), "T")


# ─── DISPATCH: payload ───────────────────────────────────────────

async def test_get_passes_params_and_undefined_token(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("GET", "/items/:id", ctrl)])
    await client.get("/items/42")
    ctrl.assert_called_once_with(
        ANY, RequestPayload(params={"id": "42"}, payload={}, query={}), "undefined",
    )


async def test_post_passes_json_body(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("POST", "/test/:id", ctrl)])
    await client.post("/test/666", json={"data": 777})
    ctrl.assert_called_once_with(
        ANY, RequestPayload(params={"id": "666"}, payload={"data": 777}, query={}),
        "undefined",
    )


async def test_query_string_repeated_keys_become_lists(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("GET", "/search", ctrl)])
    await client.get("/search?tag=a&tag=b&page=2")
    payload = ctrl.call_args.args[1]
    assert payload.query == {"tag": ["a", "b"], "page": "2"}
    assert payload.params == {}


async def test_form_body_is_decoded(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("PUT", "/form", ctrl)])
    await client.put("/form", data={"name": "x", "n": "1"})
    assert ctrl.call_args.args[1].payload == {"name": "x", "n": "1"}


async def test_unknown_content_type_yields_empty_body(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("PATCH", "/raw", ctrl)])
    await client.patch("/raw", content=b"plain", headers={"content-type": "text/plain"})
    assert ctrl.call_args.args[1].payload == {}


async def test_malformed_json_returns_400(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("POST", "/items", ctrl)])
    res = await client.post(
        "/items", content=b"{not json", headers={"content-type": "application/json"},
    )
    assert res.status_code == 400
    assert res.content == b""
    ctrl.assert_not_called()


@pytest.mark.parametrize("raw", [b"5", b"\"x\"", b"true", b"null"])
async def test_scalar_json_body_returns_400(make_client, raw):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("POST", "/items", ctrl)])
    res = await client.post(
        "/items", content=raw, headers={"content-type": "application/json"},
    )
    assert res.status_code == 400
    assert res.content == b""
    ctrl.assert_not_called()


async def test_json_array_body_is_passed_through(make_client):
    ctrl = MagicMock(return_value=None)
    client, _ = await make_client([("POST", "/items", ctrl)])
    await client.post("/items", json=[1, 2])
    assert ctrl.call_args.args[1].payload == [1, 2]


# ─── DISPATCH: responder ─────────────────────────────────────────

async def test_responder_sends_status_and_json(make_client):
    def ctrl(respond, payload, token):
        respond(201, {"id": payload.params["id"]})

    client, _ = await make_client([("POST", "/items/:id", ctrl)])
    res = await client.post("/items/9")
    assert res.status_code == 201
    assert res.json() == {"id": "9"}


async def test_responder_without_data_sends_empty_object(make_client):
    def ctrl(respond, payload, token):
        respond(202)

    client, _ = await make_client([("DELETE", "/items/:id", ctrl)])
    res = await client.delete("/items/9")
    assert res.status_code == 202
    assert res.json() == {}


async def test_async_controller_is_awaited(make_client):
    async def ctrl(respond, payload, token):
        respond(200, {"async": True})

    client, _ = await make_client([("GET", "/async", ctrl)])
    res = await client.get("/async")
    assert res.json() == {"async": True}


# ─── ERROR_CONTAINMENT ───────────────────────────────────────────

async def test_sync_controller_exception_returns_empty_500(make_client):
    def ctrl(respond, payload, token):
        raise ValueError("boom")

    client, service = await make_client([("GET", "/boom", ctrl)])
    res = await client.get("/boom")
    assert res.status_code == 500
    assert res.content == b""
    assert service.statuses() == [500]


async def test_async_controller_exception_returns_empty_500(make_client):
    ctrl = AsyncMock(side_effect=RuntimeError("boom"))
    client, _ = await make_client([("POST", "/boom", ctrl)])
    res = await client.post("/boom")
    assert res.status_code == 500
    assert res.content == b""


async def test_controller_error_logged_only_when_enabled(make_client, caplog):
    def ctrl(respond, payload, token):
        raise ValueError("secret detail")

    quiet, _ = await make_client([("GET", "/boom", ctrl)])
    loud, _ = await make_client([("GET", "/boom", ctrl)], log_errors=True)
    with caplog.at_level(logging.ERROR, logger="restapi_service"):
        quiet_res = await quiet.get("/boom")
        assert "secret detail" not in caplog.text
        await loud.get("/boom")
    assert "secret detail" in caplog.text
    assert b"secret detail" not in quiet_res.content


async def test_response_sent_before_exception_stands(make_client):
    def ctrl(respond, payload, token):
        respond(201, {"ok": True})
        raise ValueError("after response")

    client, service = await make_client([("POST", "/items", ctrl)])
    res = await client.post("/items")
    assert res.status_code == 201
    assert res.json() == {"ok": True}
    assert service.statuses() == [201]


async def test_second_responder_call_is_rejected(make_client):
    calls = []

    def ctrl(respond, payload, token):
        respond(200, {"first": True})
        try:
            respond(500, {"second": True})
        except RuntimeError as e:
            calls.append(e)

    client, _ = await make_client([("GET", "/twice", ctrl)])
    res = await client.get("/twice")
    assert res.json() == {"first": True}
    assert len(calls) == 1


# ─── FALLTHROUGH ─────────────────────────────────────────────────

async def test_silent_controller_returns_200_empty_object(make_client):
    ctrl = MagicMock(return_value=None)
    client, service = await make_client([("GET", "/silent", ctrl)])
    res = await client.get("/silent")
    assert res.status_code == 200
    assert res.json() == {}
    assert service.statuses() == [200]


async def test_terminal_state_logs_request_id(make_client):
    ctrl = MagicMock(return_value=None)
    client, service = await make_client([("GET", "/silent", ctrl)])
    await client.get("/silent", headers={"X-Request-Id": "req-1"})
    message, extra = service.logged[-1]
    assert message == "req-1 RESPONSE : 200"
    assert extra["method"] == "GET"
    assert extra["path"] == "/silent"

"""Tests for normalized error responses and request ids."""

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from recipe_server.core.errors import (
    AppError,
    StoreUnavailableError,
    app_error_handler,
    unhandled_exception_handler,
)
from recipe_server.core.middleware.request_id import RequestIdMiddleware


def test_unknown_route_has_standard_shape(client):
    resp = client.get("/v2/nothing-here")
    assert resp.status_code == 404
    payload = resp.json()
    assert payload["error"]["code"] == "not_found"
    assert payload["error"]["request_id"] == resp.headers["x-request-id"]


def test_incoming_request_id_is_echoed(client):
    resp = client.get("/v1/recipes", headers={"x-request-id": "rid-123"})
    assert resp.headers["x-request-id"] == "rid-123"


def test_store_outage_is_service_unavailable(client, gateway, monkeypatch):
    def unavailable():
        raise StoreUnavailableError("recipe store unavailable after 3 attempts")

    monkeypatch.setattr(gateway.store, "list", unavailable)
    resp = client.get("/v1/recipes")
    assert resp.status_code == 503
    payload = resp.json()
    assert payload["error"]["code"] == "service_unavailable"
    assert payload["detail"] == "recipe store unavailable after 3 attempts"


def test_unhandled_exception_does_not_leak_details():
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    test_app.add_exception_handler(AppError, app_error_handler)
    test_app.add_exception_handler(Exception, unhandled_exception_handler)

    @test_app.get("/boom")
    async def boom():
        raise RuntimeError("secret connection string")

    client = TestClient(test_app, raise_server_exceptions=False)
    resp = client.get("/boom")
    assert resp.status_code == 500
    payload = resp.json()
    assert payload["error"]["code"] == "internal_error"
    assert "secret" not in resp.text


def test_request_id_in_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="recipe_server"):
        resp = client.get("/v1/recipes/auth-cognito")
    rid = resp.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    messages = {r.getMessage() for r in records}
    assert "recipe.redacted" in messages
    assert "request.complete" in messages

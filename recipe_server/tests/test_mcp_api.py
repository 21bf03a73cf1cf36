"""Tests for the MCP endpoint (streamable HTTP, stateless JSON responses)."""

import json

import pytest

from recipe_server.core.errors import StoreUnavailableError

MCP_HEADERS = {"Accept": "application/json, text/event-stream"}


def _rpc(client, method, params=None, *, rpc_id=1, headers=None):
    payload = {"jsonrpc": "2.0", "id": rpc_id, "method": method}
    if params is not None:
        payload["params"] = params
    return client.post("/mcp", json=payload, headers={**MCP_HEADERS, **(headers or {})})


def _call(client, name, arguments=None, headers=None):
    resp = _rpc(client, "tools/call", {"name": name, "arguments": arguments or {}}, headers=headers)
    assert resp.status_code == 200
    return resp.json()["result"]


def _payload(result):
    assert not result.get("isError")
    return json.loads(result["content"][0]["text"])


def _error_text(result):
    assert result["isError"] is True
    return result["content"][0]["text"]


def test_initialize_advertises_tools(client):
    resp = _rpc(
        client,
        "initialize",
        {
            "protocolVersion": "2025-03-26",
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "1.0"},
        },
    )
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert result["protocolVersion"]
    assert "tools" in result["capabilities"]
    assert result["serverInfo"]["name"] == "shipswift-recipes"
    assert "license key" in result["instructions"]


def test_notification_is_accepted_without_body(client):
    resp = client.post(
        "/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}, headers=MCP_HEADERS
    )
    assert resp.status_code == 202


def test_ping(client):
    body = _rpc(client, "ping", rpc_id="abc").json()
    assert body["id"] == "abc"
    assert body["result"] == {}


def test_tools_list_exposes_three_operations(client):
    tools = _rpc(client, "tools/list").json()["result"]["tools"]
    by_name = {tool["name"]: tool for tool in tools}
    assert set(by_name) == {"listRecipes", "getRecipe", "searchRecipes"}
    assert "id" in by_name["getRecipe"]["inputSchema"]["properties"]
    assert "id" in by_name["getRecipe"]["inputSchema"]["required"]
    assert "query" in by_name["searchRecipes"]["inputSchema"]["required"]
    assert "ctx" not in by_name["getRecipe"]["inputSchema"]["properties"]
    assert by_name["getRecipe"]["description"].startswith("Fetch one recipe by id")


def test_call_list_recipes(client):
    recipes = _payload(_call(client, "listRecipes"))["recipes"]
    assert recipes
    assert all("body" not in r for r in recipes)


def test_call_get_free_recipe(client):
    content = _payload(_call(client, "getRecipe", {"id": "onboarding-flow"}))
    assert content["kind"] == "full"
    assert content["body"]["implementation"]


def test_call_get_pro_recipe_redacted_without_key(client):
    result = _call(client, "getRecipe", {"id": "auth-cognito"})
    content = _payload(result)
    assert content["kind"] == "redacted"
    assert content["redacted"] is True
    assert "body" not in content
    assert "implementation" not in result["content"][0]["text"]


def test_call_get_pro_recipe_with_header_key(client):
    result = _call(client, "getRecipe", {"id": "auth-cognito"}, headers={"Authorization": "Bearer sk-valid123"})
    assert _payload(result)["kind"] == "full"


def test_call_get_pro_recipe_with_argument_key(client):
    result = _call(client, "getRecipe", {"id": "auth-cognito", "credential": "sk-valid123"})
    assert _payload(result)["kind"] == "full"


def test_header_key_wins_over_argument_key(client):
    result = _call(
        client,
        "getRecipe",
        {"id": "auth-cognito", "credential": "sk-valid123"},
        headers={"Authorization": "Bearer sk-revoked999"},
    )
    content = _payload(result)
    assert content["kind"] == "redacted"
    assert content["reason"] == "key-expired"


def test_call_get_unknown_recipe(client):
    assert _payload(_call(client, "getRecipe", {"id": "does-not-exist"}))["kind"] == "not_found"


def test_call_search(client):
    content = _payload(_call(client, "searchRecipes", {"query": "paywall"}))
    assert content["recipes"][0]["id"] == "paywall-storekit"
    assert all("body" not in r for r in content["recipes"])


def test_parse_error(client):
    resp = client.post("/mcp", content=b"{not json", headers={**MCP_HEADERS, "Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == -32700


def test_invalid_envelope(client):
    resp = client.post("/mcp", json={"jsonrpc": "1.0", "id": 7, "method": "ping"}, headers=MCP_HEADERS)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_unknown_tool(client):
    assert "deleteRecipe" in _error_text(_call(client, "deleteRecipe"))


@pytest.mark.parametrize(
    "name, arguments",
    [
        ("getRecipe", {}),
        ("getRecipe", {"id": "   "}),
        ("searchRecipes", {"query": ""}),
    ],
)
def test_invalid_tool_arguments(client, name, arguments):
    _error_text(_call(client, name, arguments))


def test_blank_id_reports_invalid_request(client):
    assert "invalid_request" in _error_text(_call(client, "getRecipe", {"id": "   "}))


def test_malformed_authorization_header(client):
    result = _call(client, "getRecipe", {"id": "auth-cognito"}, headers={"Authorization": "Token abc"})
    assert "invalid_request" in _error_text(result)


def test_store_outage_maps_to_tool_error(client, gateway, monkeypatch):
    def unavailable(recipe_id):
        raise StoreUnavailableError("recipe store unavailable after 3 attempts")

    monkeypatch.setattr(gateway.store, "get", unavailable)
    text = _error_text(_call(client, "getRecipe", {"id": "auth-cognito"}))
    assert "service_unavailable" in text


def test_unexpected_error_stays_inside_the_envelope(client, gateway, monkeypatch, caplog):
    def broken():
        raise RuntimeError("connection string postgres://secret")

    monkeypatch.setattr(gateway.store, "list", broken)
    resp = _rpc(client, "tools/call", {"name": "listRecipes", "arguments": {}}, rpc_id=42)
    assert resp.status_code == 200
    body = resp.json()
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == 42
    text = _error_text(body["result"])
    assert "internal_error" in text
    assert "secret" not in text
    assert any(r.getMessage() == "mcp.unhandled" for r in caplog.records)

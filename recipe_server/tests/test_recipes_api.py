"""Tests for the REST recipe endpoints."""

import pytest


def test_list_recipes(client):
    resp = client.get("/v1/recipes")
    assert resp.status_code == 200
    recipes = resp.json()["recipes"]
    ids = [r["id"] for r in recipes]
    assert "onboarding-flow" in ids and "auth-cognito" in ids
    for recipe in recipes:
        assert set(recipe) == {"id", "title", "tier", "description"}


def test_get_free_recipe_without_credential(client):
    resp = client.get("/v1/recipes/onboarding-flow")
    assert resp.status_code == 200
    body = resp.json()
    assert body["kind"] == "full"
    assert body["tier"] == "free"
    assert body["body"]["implementation"]


def test_get_pro_recipe_without_credential_is_redacted(client):
    resp = client.get("/v1/recipes/auth-cognito")
    assert resp.status_code == 200
    body = resp.json()
    assert body["kind"] == "redacted"
    assert body["redacted"] is True
    assert body["id"] == "auth-cognito"
    assert body["title"] == "Auth with Amazon Cognito"
    assert body["reason"] == "no-key-provided"
    assert body["upgrade_message"]
    assert "body" not in body


def test_get_pro_recipe_with_valid_bearer(client):
    resp = client.get("/v1/recipes/auth-cognito", headers={"Authorization": "Bearer sk-valid123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["kind"] == "full"
    assert body["body"]["implementation"]


@pytest.mark.parametrize(
    "key, reason",
    [("sk-revoked999", "key-expired"), ("sk-nope", "key-invalid")],
)
def test_get_pro_recipe_with_bad_key_is_redacted(client, key, reason):
    resp = client.get("/v1/recipes/auth-cognito", headers={"Authorization": f"Bearer {key}"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["kind"] == "redacted"
    assert body["reason"] == reason


def test_unknown_recipe_is_not_found_payload(client):
    resp = client.get("/v1/recipes/does-not-exist")
    assert resp.status_code == 200
    body = resp.json()
    assert body["kind"] == "not_found"
    assert body["id"] == "does-not-exist"
    assert "body" not in body and "redacted" not in body


def test_non_bearer_authorization_is_invalid_request(client):
    resp = client.get("/v1/recipes/auth-cognito", headers={"Authorization": "Basic dXNlcjpwYXNz"})
    assert resp.status_code == 400
    payload = resp.json()
    assert payload["error"]["code"] == "invalid_request"
    assert payload["error"]["request_id"] == resp.headers["x-request-id"]


def test_empty_bearer_is_treated_as_absent(client):
    resp = client.get("/v1/recipes/auth-cognito", headers={"Authorization": "Bearer "})
    assert resp.status_code == 200
    assert resp.json()["reason"] == "no-key-provided"


def test_search_ranks_and_omits_bodies(client):
    resp = client.get("/v1/recipes/search", params={"q": "camera"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["query"] == "camera"
    ids = [r["id"] for r in payload["recipes"]]
    assert ids[:2] == ["camera-capture", "face-camera"]
    assert all("body" not in r for r in payload["recipes"])


def test_search_is_deterministic(client):
    first = client.get("/v1/recipes/search", params={"q": "swiftui chart"}).json()
    second = client.get("/v1/recipes/search", params={"q": "swiftui chart"}).json()
    assert first == second


def test_search_requires_query(client):
    resp = client.get("/v1/recipes/search")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_request"


def test_blank_search_query_rejected(client):
    resp = client.get("/v1/recipes/search", params={"q": "   "})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_request"

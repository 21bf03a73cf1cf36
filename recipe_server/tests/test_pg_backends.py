"""
PostgreSQL-backed store and registry tests.

Run only when DATABASE_URL is set; the session fixture creates the tables
and reset_db truncates them around each test.
"""
import os

import pytest

from recipe_server.core.errors import TierImmutableError
from recipe_server.features.licensing.registry_pg import PostgresLicenseRegistry
from recipe_server.features.licensing.validator import LicenseValidator
from recipe_server.features.recipes.store_pg import PostgresRecipeStore
from recipe_server.models.license import EntitlementReason

pytestmark = pytest.mark.skipif(not os.getenv("DATABASE_URL"), reason="DATABASE_URL not set")


def test_publish_and_read_latest_version(reset_db, make_recipe):
    store = PostgresRecipeStore(retry_attempts=1)
    store.publish(make_recipe("paywall", tier="pro", title="Paywall v1"))
    store.publish(make_recipe("paywall", tier="pro", title="Paywall v2", version=2))

    recipe = store.get("paywall")
    assert recipe.version == 2
    assert recipe.title == "Paywall v2"
    assert [s.id for s in store.list()] == ["paywall"]


def test_pg_store_rejects_tier_change(reset_db, make_recipe):
    store = PostgresRecipeStore(retry_attempts=1)
    store.publish(make_recipe("paywall", tier="pro"))
    with pytest.raises(TierImmutableError):
        store.publish(make_recipe("paywall", tier="free", version=2))


def test_pg_store_matches_memory_search_order(reset_db, catalog, store):
    pg_store = PostgresRecipeStore(retry_attempts=1)
    for recipe in catalog:
        pg_store.publish(recipe)
    assert pg_store.search("camera swiftui") == store.search("camera swiftui")
    assert pg_store.get("does-not-exist") is None


def test_pg_registry_issue_and_revoke(reset_db):
    registry = PostgresLicenseRegistry(retry_attempts=1)
    validator = LicenseValidator(registry, pack_version="1.0.0")

    license, key = registry.issue("1")
    assert registry.lookup(key).key_hash == license.key_hash
    assert validator.validate(key).allowed

    assert registry.revoke(key) is True
    assert validator.validate(key).reason == EntitlementReason.KEY_EXPIRED
    assert registry.lookup("sk-missing") is None

# recipe_server/conftest.py
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from recipe_server.features.gateway.service import RecipeGateway
from recipe_server.features.licensing.registry import InMemoryLicenseRegistry
from recipe_server.features.licensing.validator import LicenseValidator
from recipe_server.features.recipes.catalog import load_catalog
from recipe_server.features.recipes.store import InMemoryRecipeStore
from recipe_server.models.license import LicenseStatus
from recipe_server.models.recipe import Recipe

TEST_UPGRADE_MESSAGE = "Upgrade to ShipSwift Pro to unlock this recipe."
TEST_UPGRADE_URL = "https://example.test/pro"


@pytest.fixture(scope="session")
def db_url():
    """
    Provide DATABASE_URL for tests.

    Returns the URL from environment, or None if not set.
    PostgreSQL-backed tests skip themselves when it is None.
    """
    return os.getenv("DATABASE_URL")


@pytest.fixture(scope="session", autouse=True)
def create_tables(db_url):
    """Create the tables once per session when a database is configured."""
    if not db_url:
        yield
        return

    from recipe_server.core.database import create_all_tables
    create_all_tables()
    yield


@pytest.fixture(scope="function")
def reset_db(db_url):
    """Truncate recipes and licenses around a test. No-op without a database."""
    if not db_url:
        yield
        return

    from sqlalchemy import text
    from recipe_server.core.database import get_engine, metadata

    engine = get_engine()
    table_names = [table.name for table in metadata.sorted_tables]

    def truncate():
        with engine.connect() as conn:
            for table_name in reversed(table_names):
                conn.execute(text(f"TRUNCATE TABLE {table_name} CASCADE"))
            conn.commit()

    truncate()
    yield
    truncate()


@pytest.fixture
def make_recipe():
    """Factory for small valid recipes; keyword overrides win."""

    def _make(recipe_id="sample-recipe", tier="free", **overrides):
        data = {
            "id": recipe_id,
            "title": recipe_id.replace("-", " ").title(),
            "description": f"Description of {recipe_id}",
            "tier": tier,
            "tags": [],
            "body": {
                "problem": f"Problem solved by {recipe_id}",
                "implementation": f"// implementation of {recipe_id}",
            },
        }
        data.update(overrides)
        return Recipe.model_validate(data)

    return _make


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def store(catalog):
    return InMemoryRecipeStore(catalog)


@pytest.fixture
def registry():
    registry = InMemoryLicenseRegistry()
    registry.register("sk-valid123", scope="*")
    registry.register("sk-revoked999", scope="*", status=LicenseStatus.REVOKED)
    registry.register("sk-expired000", scope="*", status=LicenseStatus.EXPIRED)
    registry.register("sk-lapsed111", scope="*", expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    registry.register("sk-v2only222", scope="2")
    return registry


@pytest.fixture
def validator(registry):
    return LicenseValidator(registry, pack_version="1.0.0")


@pytest.fixture
def gateway(store, validator):
    return RecipeGateway(
        store,
        validator,
        timeout_seconds=2.0,
        upgrade_message=TEST_UPGRADE_MESSAGE,
        upgrade_url=TEST_UPGRADE_URL,
    )


@pytest.fixture
def app(gateway):
    from recipe_server.main import create_app
    return create_app(gateway)


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which starts the MCP session manager
    with TestClient(app) as test_client:
        yield test_client

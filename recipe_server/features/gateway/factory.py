"""
Builds the gateway and its collaborators from settings.

The app calls build_gateway() once at startup and keeps the result on
app.state; tests construct RecipeGateway directly with in-memory fakes.
"""
import logging
from typing import Optional

from recipe_server.core.config import Settings, settings, split_csv
from recipe_server.features.gateway.service import RecipeGateway
from recipe_server.features.licensing.registry import InMemoryLicenseRegistry, LicenseRegistry
from recipe_server.features.licensing.validator import LicenseValidator
from recipe_server.features.recipes.catalog import load_catalog
from recipe_server.features.recipes.store import InMemoryRecipeStore, RecipeStore


logger = logging.getLogger(__name__)


def build_recipe_store(cfg: Settings) -> RecipeStore:
    if cfg.RECIPE_STORE_BACKEND == "postgres":
        from recipe_server.features.recipes.store_pg import PostgresRecipeStore

        return PostgresRecipeStore(
            retry_attempts=cfg.IO_RETRY_ATTEMPTS,
            retry_backoff_seconds=cfg.IO_RETRY_BACKOFF_SECONDS,
        )
    return InMemoryRecipeStore(load_catalog(cfg.RECIPE_CATALOG_PATH))


def build_license_registry(cfg: Settings) -> LicenseRegistry:
    if cfg.LICENSE_BACKEND == "postgres":
        from recipe_server.features.licensing.registry_pg import PostgresLicenseRegistry

        return PostgresLicenseRegistry(
            retry_attempts=cfg.IO_RETRY_ATTEMPTS,
            retry_backoff_seconds=cfg.IO_RETRY_BACKOFF_SECONDS,
        )

    registry = InMemoryLicenseRegistry()
    dev_keys = split_csv(cfg.DEV_LICENSE_KEYS)
    for key in dev_keys:
        registry.register(key, scope="*")
    if dev_keys:
        logger.info(f"Registered {len(dev_keys)} development license keys")
    return registry


def build_gateway(cfg: Optional[Settings] = None) -> RecipeGateway:
    cfg = cfg or settings
    validator = LicenseValidator(
        build_license_registry(cfg),
        pack_version=cfg.RECIPE_PACK_VERSION,
        cache_ttl_seconds=cfg.LICENSE_CACHE_TTL_SECONDS,
        cache_max_entries=cfg.LICENSE_CACHE_MAX_ENTRIES,
    )
    return RecipeGateway(
        build_recipe_store(cfg),
        validator,
        timeout_seconds=cfg.OPERATION_TIMEOUT_SECONDS,
        upgrade_message=cfg.UPGRADE_MESSAGE,
        upgrade_url=cfg.UPGRADE_URL,
    )

#!/usr/bin/env python3
"""
Recipe server management commands (PostgreSQL backends).

Usage:
    python scripts/manage.py init-db
    python scripts/manage.py seed [--catalog path/to/recipes.json]
    python scripts/manage.py issue-license [--scope 1] [--expires-in-days 365]
    python scripts/manage.py revoke-license sk-...

Prerequisites:
    - DATABASE_URL set (environment or .env)
"""
import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from recipe_server.core.database import create_all_tables
from recipe_server.core.errors import TierImmutableError
from recipe_server.features.licensing.registry import LicenseRegistry
from recipe_server.features.licensing.registry_pg import PostgresLicenseRegistry
from recipe_server.features.recipes.catalog import load_catalog
from recipe_server.features.recipes.store import RecipeStore
from recipe_server.features.recipes.store_pg import PostgresRecipeStore


def seed_store(store: RecipeStore, catalog_path: Optional[str] = None) -> int:
    """Publish every catalog recipe. Returns how many were published; tier conflicts are reported and skipped."""
    published = 0
    for recipe in load_catalog(catalog_path):
        try:
            store.publish(recipe)
        except TierImmutableError as e:
            print(f"SKIP {recipe.id}: {e}")
            continue
        published += 1
    return published


def issue_license(registry: LicenseRegistry, scope: str, expires_in_days: Optional[int] = None) -> str:
    expires_at = None
    if expires_in_days:
        expires_at = datetime.now(timezone.utc) + timedelta(days=expires_in_days)
    license, key = registry.issue(scope, expires_at=expires_at)
    print(f"Issued license {license.key_prefix}... scope={license.scope} expires_at={license.expires_at or 'never'}")
    print("Full key (shown once):")
    print(key)
    return key


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recipe server management")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the recipes and licenses tables")

    seed = sub.add_parser("seed", help="Publish the recipe catalog into PostgreSQL")
    seed.add_argument("--catalog", default=None, help="Catalog JSON path (defaults to the bundled catalog)")

    issue = sub.add_parser("issue-license", help="Issue a new license key")
    issue.add_argument("--scope", default="*", help="Pack major versions covered, e.g. '1' or '1,2' or '*'")
    issue.add_argument("--expires-in-days", type=int, default=None)

    revoke = sub.add_parser("revoke-license", help="Revoke a license key")
    revoke.add_argument("key")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "init-db":
        create_all_tables()
        print("Tables created")
        return 0

    if args.command == "seed":
        count = seed_store(PostgresRecipeStore(), args.catalog)
        print(f"Published {count} recipes")
        return 0

    if args.command == "issue-license":
        issue_license(PostgresLicenseRegistry(), args.scope, args.expires_in_days)
        return 0

    if args.command == "revoke-license":
        if PostgresLicenseRegistry().revoke(args.key):
            print("License revoked")
            return 0
        print("ERROR: unknown license key")
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())

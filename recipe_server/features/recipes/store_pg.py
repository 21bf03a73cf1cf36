"""
recipe_server/features/recipes/store_pg.py

PostgreSQL-backed recipe store.

Maintains the same interface as InMemoryRecipeStore. Every recipe row is
keyed by (id, version); reads resolve each id to its highest version.
Connection failures are retried here, not by callers.
"""

import logging
from typing import List, Optional

from sqlalchemy import and_, func, insert, inspect, select

from recipe_server.core.config import settings
from recipe_server.core.database import REQUIRED_TABLES, get_db_session, get_engine, recipes
from recipe_server.core.errors import StoreUnavailableError
from recipe_server.core.retry import retrying
from recipe_server.features.recipes.search import rank
from recipe_server.features.recipes.store import ensure_same_tier
from recipe_server.models.recipe import Recipe, RecipeSummary


logger = logging.getLogger(__name__)


def _row_to_recipe(row) -> Recipe:
    return Recipe(
        id=row.id,
        version=row.version,
        title=row.title,
        description=row.description or "",
        tier=row.tier,
        platform=row.platform,
        complexity=row.complexity,
        tags=row.tags or [],
        requires=row.requires or [],
        pairs_with=row.pairs_with or [],
        body=row.body,
    )


def _latest_versions():
    """Subquery: highest published version per recipe id."""
    return (
        select(recipes.c.id, func.max(recipes.c.version).label("version"))
        .group_by(recipes.c.id)
        .subquery()
    )


class PostgresRecipeStore:
    """PostgreSQL recipe store with bounded I/O retries."""

    def __init__(self, *, retry_attempts: Optional[int] = None, retry_backoff_seconds: Optional[float] = None):
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.IO_RETRY_ATTEMPTS
        self.retry_backoff_seconds = (
            retry_backoff_seconds if retry_backoff_seconds is not None else settings.IO_RETRY_BACKOFF_SECONDS
        )

    def _select_latest(self):
        latest = _latest_versions()
        return select(recipes).join(
            latest,
            and_(recipes.c.id == latest.c.id, recipes.c.version == latest.c.version),
        )

    def _all(self) -> List[Recipe]:
        with get_db_session() as session:
            rows = session.execute(self._select_latest().order_by(recipes.c.id.asc())).fetchall()
            return [_row_to_recipe(row) for row in rows]

    @retrying("recipes.list", StoreUnavailableError)
    def list(self) -> List[RecipeSummary]:
        latest = _latest_versions()
        query = (
            select(recipes.c.id, recipes.c.title, recipes.c.tier, recipes.c.description)
            .join(latest, and_(recipes.c.id == latest.c.id, recipes.c.version == latest.c.version))
            .order_by(recipes.c.id.asc())
        )
        with get_db_session() as session:
            rows = session.execute(query).fetchall()
        return [
            RecipeSummary(id=row.id, title=row.title, tier=row.tier, description=row.description or "")
            for row in rows
        ]

    @retrying("recipes.get", StoreUnavailableError)
    def get(self, recipe_id: str) -> Optional[Recipe]:
        query = (
            select(recipes)
            .where(recipes.c.id == recipe_id)
            .order_by(recipes.c.version.desc())
            .limit(1)
        )
        with get_db_session() as session:
            row = session.execute(query).fetchone()
        return _row_to_recipe(row) if row else None

    @retrying("recipes.search", StoreUnavailableError)
    def search(self, query: str) -> List[RecipeSummary]:
        # Catalog is small; rank in Python so ordering matches every backend
        return rank(self._all(), query)

    @retrying("recipes.publish", StoreUnavailableError)
    def publish(self, recipe: Recipe) -> Recipe:
        with get_db_session() as session:
            existing_row = session.execute(
                select(recipes)
                .where(recipes.c.id == recipe.id)
                .order_by(recipes.c.version.desc())
                .limit(1)
            ).fetchone()
            existing = _row_to_recipe(existing_row) if existing_row else None
            ensure_same_tier(existing, recipe)

            if existing is not None and existing.version >= recipe.version:
                # Versions are immutable once published
                return existing

            session.execute(
                insert(recipes).values(
                    id=recipe.id,
                    version=recipe.version,
                    title=recipe.title,
                    description=recipe.description,
                    tier=recipe.tier.value,
                    platform=recipe.platform,
                    complexity=recipe.complexity,
                    tags=list(recipe.tags),
                    requires=list(recipe.requires),
                    pairs_with=list(recipe.pairs_with),
                    body=recipe.body.model_dump(),
                )
            )
            session.commit()
        return recipe

    def check_ready(self) -> bool:
        try:
            engine = get_engine()
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            inspector = inspect(engine)
            return all(inspector.has_table(name) for name in REQUIRED_TABLES)
        except Exception as e:
            logger.warning(f"[store] readiness probe failed: {e}")
            return False

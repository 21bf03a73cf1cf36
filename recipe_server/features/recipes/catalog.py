"""
recipe_server/features/recipes/catalog.py

Loads the bundled recipe catalog (JSON) used to seed the in-memory store
and, through scripts/manage.py, the PostgreSQL store.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from recipe_server.models.recipe import Recipe


logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "data" / "recipes.json"

_recipes_adapter = TypeAdapter(List[Recipe])


class CatalogError(ValueError):
    """Raised when a catalog file cannot be parsed or violates store invariants."""


def parse_catalog(payload: Union[str, bytes, list]) -> List[Recipe]:
    """Validate raw catalog content. Accepts a JSON string or an already-decoded list."""
    try:
        data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
        if isinstance(data, dict):
            data = data.get("recipes", [])
        recipes = _recipes_adapter.validate_python(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise CatalogError(f"Invalid recipe catalog: {e}") from e

    seen = set()
    for recipe in recipes:
        key = (recipe.id, recipe.version)
        if key in seen:
            raise CatalogError(f"Duplicate recipe id in catalog: {recipe.id} (version {recipe.version})")
        seen.add(key)

    known_ids = {recipe.id for recipe in recipes}
    for recipe in recipes:
        dangling = [rid for rid in recipe.requires + recipe.pairs_with if rid not in known_ids]
        if dangling:
            # Hints only; a missing target is worth a warning, not a failure
            logger.warning(
                "catalog.dangling_reference",
                extra={"recipe_id": recipe.id, "reason": ",".join(dangling)},
            )
    return recipes


def load_catalog(path: Optional[Union[str, Path]] = None) -> List[Recipe]:
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        raw = catalog_path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read recipe catalog at {catalog_path}: {e}") from e
    recipes = parse_catalog(raw)
    logger.info(f"Loaded {len(recipes)} recipes from {catalog_path.name}")
    return recipes

"""
recipe_server/features/recipes/store.py

Recipe store interface and the in-memory implementation.

The store is tier-agnostic: `get` returns the full document for free and pro
recipes alike. Tier enforcement belongs to the gateway.
"""

import threading
from typing import Dict, Iterable, List, Optional, Protocol

from recipe_server.core.errors import TierImmutableError
from recipe_server.features.recipes.search import rank
from recipe_server.models.recipe import Recipe, RecipeSummary


class RecipeStore(Protocol):
    """
    Protocol for recipe stores.

    Implementations must be safe to share across concurrent requests.
    Transient backend failures surface as StoreUnavailableError after the
    implementation's own bounded retries.
    """

    def list(self) -> List[RecipeSummary]:
        """Summaries of every recipe, ordered by id."""
        ...

    def get(self, recipe_id: str) -> Optional[Recipe]:
        """Full recipe, or None when the id is unknown."""
        ...

    def search(self, query: str) -> List[RecipeSummary]:
        """Summaries ranked by relevance (see search.py for the rule)."""
        ...

    def publish(self, recipe: Recipe) -> Recipe:
        """Insert or replace a recipe. Raises TierImmutableError on a tier change."""
        ...

    def check_ready(self) -> bool:
        ...


def ensure_same_tier(existing: Optional[Recipe], recipe: Recipe) -> None:
    if existing is not None and existing.tier != recipe.tier:
        raise TierImmutableError(
            f"Recipe '{recipe.id}' was published as {existing.tier.value}; "
            f"cannot republish as {recipe.tier.value}"
        )


class InMemoryRecipeStore:
    """
    Dictionary-backed recipe store.

    Reads take a snapshot of the current mapping so concurrent publishes
    never expose a half-updated view.
    """

    def __init__(self, recipes: Iterable[Recipe] = ()):
        self._recipes: Dict[str, Recipe] = {}
        self._lock = threading.Lock()
        for recipe in recipes:
            self.publish(recipe)

    def _snapshot(self) -> List[Recipe]:
        return sorted(self._recipes.values(), key=lambda r: r.id)

    def list(self) -> List[RecipeSummary]:
        return [recipe.summary() for recipe in self._snapshot()]

    def get(self, recipe_id: str) -> Optional[Recipe]:
        return self._recipes.get(recipe_id)

    def search(self, query: str) -> List[RecipeSummary]:
        return rank(self._snapshot(), query)

    def publish(self, recipe: Recipe) -> Recipe:
        with self._lock:
            existing = self._recipes.get(recipe.id)
            ensure_same_tier(existing, recipe)
            if existing is not None and existing.version >= recipe.version:
                # Versions are immutable once published
                return existing
            self._recipes[recipe.id] = recipe
            return recipe

    def check_ready(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._recipes)

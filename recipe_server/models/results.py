"""
recipe_server/models/results.py

Result shapes returned by the gateway for a recipe lookup.

Redaction and not-found are data, not exceptions: every caller receives one
of three tagged variants and has to handle each explicitly.
"""

from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from recipe_server.models.license import EntitlementReason
from recipe_server.models.recipe import Recipe, RecipeBody, RecipeSummary, Tier


class FullRecipe(BaseModel):
    """Complete recipe, body included. Same shape for free and entitled pro recipes."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["full"] = "full"
    id: str
    title: str
    description: str
    tier: Tier
    platform: Optional[str] = None
    complexity: Optional[str] = None
    tags: List[str]
    requires: List[str]
    pairs_with: List[str]
    version: int
    body: RecipeBody

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "FullRecipe":
        return cls(**recipe.model_dump())


class RedactedRecipe(BaseModel):
    """Pro recipe placeholder for callers without an entitlement. Never carries the body."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["redacted"] = "redacted"
    id: str
    title: str
    tier: Tier = Tier.PRO
    requires: List[str] = Field(default_factory=list)
    pairs_with: List[str] = Field(default_factory=list)
    redacted: Literal[True] = True
    reason: EntitlementReason
    upgrade_message: str
    upgrade_url: Optional[str] = None


class RecipeNotFound(BaseModel):
    """Well-formed negative result for an unknown recipe id."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["not_found"] = "not_found"
    id: str
    message: str


RecipeResult = Annotated[
    Union[FullRecipe, RedactedRecipe, RecipeNotFound],
    Field(discriminator="kind"),
]


class RecipeListResult(BaseModel):
    recipes: List[RecipeSummary]


class RecipeSearchResult(BaseModel):
    query: str
    recipes: List[RecipeSummary]

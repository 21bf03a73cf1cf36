"""
recipe_server/models/recipe.py

Recipe documents served to AI coding assistants.

A recipe covers one feature area (auth, camera, paywall, ...) and carries an
access tier. Relational metadata (requires, pairs_with) is informational
only: nothing enforces reading order at runtime.
"""

import re
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


RECIPE_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class Tier(str, Enum):
    """Access class of a recipe."""
    FREE = "free"
    PRO = "pro"


class RecipeBody(BaseModel):
    """
    Full content payload of a recipe.

    Sections mirror how a recipe is written: the problem, why the
    architecture looks the way it does, what it depends on, the
    implementation itself, how to wire it into an app, what to tweak, and
    what tends to go wrong.
    """
    model_config = ConfigDict(frozen=True)

    problem: str
    architecture: str = ""
    dependencies: List[str] = Field(default_factory=list)
    implementation: str
    integration_steps: List[str] = Field(default_factory=list)
    customization: List[str] = Field(default_factory=list)
    pitfalls: List[str] = Field(default_factory=list)


class RecipeSummary(BaseModel):
    """Listing/search view of a recipe. Never carries the body."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    tier: Tier
    description: str


class Recipe(BaseModel):
    """A published recipe document."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    tier: Tier
    platform: Optional[str] = None
    complexity: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    requires: List[str] = Field(default_factory=list)
    pairs_with: List[str] = Field(default_factory=list)
    version: int = Field(default=1, ge=1)
    body: RecipeBody

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if not RECIPE_ID_PATTERN.match(value):
            raise ValueError("recipe id must be a lowercase slug (letters, digits, hyphens)")
        return value

    @field_validator("title")
    @classmethod
    def _check_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title cannot be empty")
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        return sorted({tag.strip().lower() for tag in value if tag.strip()})

    @field_validator("requires", "pairs_with")
    @classmethod
    def _normalize_relations(cls, value: List[str], info: ValidationInfo) -> List[str]:
        # Relations behave as sets: sorted, unique, never self-referential
        own_id = info.data.get("id")
        return sorted({rid for rid in value if rid and rid != own_id})

    def summary(self) -> RecipeSummary:
        return RecipeSummary(
            id=self.id,
            title=self.title,
            tier=self.tier,
            description=self.description,
        )

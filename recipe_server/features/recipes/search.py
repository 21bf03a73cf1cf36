"""
recipe_server/features/recipes/search.py

Relevance ranking shared by every recipe store backend.

Matching rule:
- The query is lowercased and split into tokens on every character that is
  not a letter or digit. A query without tokens matches nothing.
- The whole normalized query equal to the recipe id scores +10.
- Each token then scores its single best rule:
    +5  equals one of the id's hyphen-separated parts
    +4  equals a word of the title
    +3  equals a tag
    +2  equals a word of the description or the platform
    +1  appears as a substring of the id, title, description or a tag
- Recipes with a total of 0 are dropped. Results are ordered by score
  descending, then id ascending, so identical input gives identical order.
"""

import re
from typing import Iterable, List, Tuple

from recipe_server.models.recipe import Recipe, RecipeSummary


_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")

EXACT_ID_SCORE = 10
ID_PART_SCORE = 5
TITLE_WORD_SCORE = 4
TAG_SCORE = 3
DESCRIPTION_WORD_SCORE = 2
SUBSTRING_SCORE = 1


def tokenize(text: str) -> List[str]:
    return [tok for tok in _TOKEN_SPLIT.split((text or "").lower()) if tok]


def normalize_query(query: str) -> str:
    return "-".join(tokenize(query))


def score_recipe(recipe: Recipe, query: str) -> int:
    tokens = tokenize(query)
    if not tokens:
        return 0

    id_parts = set(recipe.id.split("-"))
    title_words = set(tokenize(recipe.title))
    tags = set(recipe.tags)
    description_words = set(tokenize(recipe.description)) | set(tokenize(recipe.platform or ""))
    haystack = " ".join([recipe.id, recipe.title.lower(), recipe.description.lower(), " ".join(recipe.tags)])

    score = EXACT_ID_SCORE if normalize_query(query) == recipe.id else 0
    for token in tokens:
        if token in id_parts:
            score += ID_PART_SCORE
        elif token in title_words:
            score += TITLE_WORD_SCORE
        elif token in tags:
            score += TAG_SCORE
        elif token in description_words:
            score += DESCRIPTION_WORD_SCORE
        elif token in haystack:
            score += SUBSTRING_SCORE
    return score


def rank(recipes: Iterable[Recipe], query: str) -> List[RecipeSummary]:
    """Score, filter and order recipes for a query."""
    scored: List[Tuple[int, str, Recipe]] = []
    for recipe in recipes:
        score = score_recipe(recipe, query)
        if score > 0:
            scored.append((score, recipe.id, recipe))
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [recipe.summary() for _, _, recipe in scored]

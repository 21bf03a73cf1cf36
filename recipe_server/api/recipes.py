"""
Recipe REST API.

GET /v1/recipes               -> summaries
GET /v1/recipes/search?q=...  -> ranked summaries
GET /v1/recipes/{recipe_id}   -> full | redacted | not_found (all HTTP 200)

The credential comes from `Authorization: Bearer sk-...`; without it callers
are on the free tier.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from recipe_server.api.deps import bearer_credential, get_gateway
from recipe_server.features.gateway.service import RecipeGateway
from recipe_server.models.results import RecipeListResult, RecipeResult, RecipeSearchResult


router = APIRouter(prefix="/v1/recipes", tags=["recipes"])


@router.get("", response_model=RecipeListResult)
async def list_recipes(gateway: RecipeGateway = Depends(get_gateway)):
    return await gateway.dispatch("listRecipes")


@router.get("/search", response_model=RecipeSearchResult)
async def search_recipes(
    q: str = Query(..., min_length=1, max_length=200),
    credential: Optional[str] = Depends(bearer_credential),
    gateway: RecipeGateway = Depends(get_gateway),
):
    return await gateway.dispatch("searchRecipes", {"query": q}, credential=credential)


@router.get("/{recipe_id}", response_model=RecipeResult)
async def get_recipe(
    recipe_id: str,
    credential: Optional[str] = Depends(bearer_credential),
    gateway: RecipeGateway = Depends(get_gateway),
):
    """Fetch a recipe. Pro recipes without a valid key come back redacted, not as an error."""
    return await gateway.dispatch("getRecipe", {"id": recipe_id}, credential=credential)

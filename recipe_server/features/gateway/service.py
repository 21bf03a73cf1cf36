"""
recipe_server/features/gateway/service.py

Transport-agnostic request handling for the recipe operations.

Per call:
1. Parse     - validate operation name and arguments (InvalidRequestError /
               UnknownOperationError on bad input).
2. Dispatch  - query the recipe store.
3. Tier check - only for getRecipe on a pro recipe: ask the license validator.
4. Result    - FullRecipe | RedactedRecipe | RecipeNotFound, or a summary list.

Store and validator calls run in the threadpool under a bounded timeout.
A store that times out or stays unavailable surfaces ServiceUnavailableError.
A validator that times out or is unavailable fails closed: the caller gets
the redacted shape, never the body.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from starlette.concurrency import run_in_threadpool

from recipe_server.core.errors import (
    InvalidRequestError,
    ServiceUnavailableError,
    StoreUnavailableError,
    UnknownOperationError,
)
from recipe_server.core.logging import key_prefix, log_event
from recipe_server.features.licensing.validator import LicenseValidator
from recipe_server.features.recipes.store import RecipeStore
from recipe_server.models.license import EntitlementDecision, EntitlementReason
from recipe_server.models.recipe import Tier
from recipe_server.models.results import (
    FullRecipe,
    RecipeListResult,
    RecipeNotFound,
    RecipeResult,
    RecipeSearchResult,
    RedactedRecipe,
)


VERIFICATION_UNAVAILABLE_MESSAGE = (
    "License verification is temporarily unavailable, so Pro content is withheld. "
    "Please retry in a moment."
)


class ListRecipesArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    credential: Optional[str] = None


class GetRecipeArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, max_length=100, description="Recipe id, e.g. auth-cognito")
    credential: Optional[str] = Field(default=None, description="License key (sk-...) unlocking Pro recipes")

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id cannot be blank")
        return value


class SearchRecipesArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(min_length=1, max_length=200, description="Free-text search query")
    credential: Optional[str] = Field(default=None, description="License key (sk-...); search never returns bodies")

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query cannot be blank")
        return value


@dataclass(frozen=True)
class OperationSpec:
    name: str
    description: str
    arguments: Type[BaseModel]


OPERATIONS: Dict[str, OperationSpec] = {
    "listRecipes": OperationSpec(
        name="listRecipes",
        description="List every recipe with its id, title, tier and description.",
        arguments=ListRecipesArgs,
    ),
    "getRecipe": OperationSpec(
        name="getRecipe",
        description=(
            "Fetch one recipe by id. Free recipes return the full body; Pro recipes "
            "need a valid license key, otherwise a redacted placeholder is returned."
        ),
        arguments=GetRecipeArgs,
    ),
    "searchRecipes": OperationSpec(
        name="searchRecipes",
        description="Search recipes by keyword. Returns summaries ranked by relevance.",
        arguments=SearchRecipesArgs,
    ),
}


def parse_arguments(operation: str, arguments: Optional[Mapping[str, Any]]) -> BaseModel:
    op = OPERATIONS.get(operation)
    if op is None:
        raise UnknownOperationError(f"Unknown operation: {operation}")
    if arguments is not None and not isinstance(arguments, Mapping):
        raise InvalidRequestError("arguments must be an object")
    try:
        return op.arguments.model_validate(dict(arguments or {}))
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidRequestError(f"Invalid arguments for {operation}: {details}") from e


class RecipeGateway:
    """Applies the tier policy over an injected store and validator."""

    def __init__(
        self,
        store: RecipeStore,
        validator: LicenseValidator,
        *,
        timeout_seconds: float,
        upgrade_message: str,
        upgrade_url: Optional[str] = None,
    ):
        self.store = store
        self.validator = validator
        self.timeout_seconds = timeout_seconds
        self.upgrade_message = upgrade_message
        self.upgrade_url = upgrade_url

    async def dispatch(
        self,
        operation: str,
        arguments: Optional[Mapping[str, Any]] = None,
        *,
        credential: Optional[str] = None,
    ) -> BaseModel:
        """Validate and run a named operation. An explicit credential wins over arguments.credential."""
        args = parse_arguments(operation, arguments)
        effective_credential = credential or getattr(args, "credential", None)

        if operation == "listRecipes":
            return await self.list_recipes()
        if operation == "getRecipe":
            return await self.get_recipe(args.id, credential=effective_credential)
        return await self.search_recipes(args.query, credential=effective_credential)

    async def list_recipes(self) -> RecipeListResult:
        summaries = await self._call_store(self.store.list, operation="listRecipes")
        return RecipeListResult(recipes=summaries)

    async def search_recipes(self, query: str, *, credential: Optional[str] = None) -> RecipeSearchResult:
        # Summaries never carry bodies, so no entitlement check is needed here
        summaries = await self._call_store(self.store.search, query, operation="searchRecipes")
        return RecipeSearchResult(query=query, recipes=summaries)

    async def get_recipe(self, recipe_id: str, *, credential: Optional[str] = None) -> RecipeResult:
        recipe = await self._call_store(self.store.get, recipe_id, operation="getRecipe")
        if recipe is None:
            log_event("info", "recipe.not_found", recipe_id=recipe_id, operation="getRecipe")
            return RecipeNotFound(id=recipe_id, message=f"No recipe with id '{recipe_id}'")

        if recipe.tier == Tier.FREE:
            log_event(
                "info",
                "recipe.get",
                recipe_id=recipe.id,
                operation="getRecipe",
                extra={"tier": "free", "reason": EntitlementReason.TIER_FREE.value},
            )
            return FullRecipe.from_recipe(recipe)

        decision, verified = await self._entitlement(credential)
        if decision.allowed:
            log_event(
                "info",
                "recipe.get",
                recipe_id=recipe.id,
                operation="getRecipe",
                extra={"tier": "pro", "reason": decision.reason.value},
            )
            return FullRecipe.from_recipe(recipe)

        log_event(
            "info",
            "recipe.redacted",
            recipe_id=recipe.id,
            operation="getRecipe",
            extra={"reason": decision.reason.value},
        )
        return RedactedRecipe(
            id=recipe.id,
            title=recipe.title,
            tier=recipe.tier,
            requires=recipe.requires,
            pairs_with=recipe.pairs_with,
            reason=decision.reason,
            upgrade_message=self.upgrade_message if verified else VERIFICATION_UNAVAILABLE_MESSAGE,
            upgrade_url=self.upgrade_url,
        )

    async def _call_store(self, fn: Callable, *args, operation: str):
        try:
            return await asyncio.wait_for(run_in_threadpool(fn, *args), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            log_event("error", "store.timeout", operation=operation, error_code="service_unavailable")
            raise StoreUnavailableError(f"Recipe store timed out during {operation}") from e
        except ServiceUnavailableError:
            log_event("error", "store.unavailable", operation=operation, error_code="service_unavailable")
            raise

    async def _entitlement(self, credential: Optional[str]) -> tuple[EntitlementDecision, bool]:
        """Return (decision, verified). verified is False when the validator could not answer."""
        try:
            decision = await asyncio.wait_for(
                run_in_threadpool(self.validator.validate, credential),
                timeout=self.timeout_seconds,
            )
            return decision, True
        except (asyncio.TimeoutError, ServiceUnavailableError) as e:
            # Fail closed: an outage must never release pro content
            log_event(
                "warning",
                "license.registry_unavailable",
                operation="getRecipe",
                error_code="service_unavailable",
                extra={"key_prefix": key_prefix(credential), "cause": type(e).__name__},
            )
            return EntitlementDecision.deny(EntitlementReason.KEY_INVALID), False
        except Exception as e:
            log_event(
                "error",
                "license.validate_failed",
                operation="getRecipe",
                error_code="internal_error",
                extra={"key_prefix": key_prefix(credential), "cause": type(e).__name__},
            )
            return EntitlementDecision.deny(EntitlementReason.KEY_INVALID), False

"""
MCP endpoint: FastMCP server over streamable HTTP at /mcp.

Tools:
- listRecipes                -> every recipe summary
- getRecipe(id, credential?) -> full, redacted or not_found
- searchRecipes(query, credential?) -> ranked summaries

The server runs stateless with plain JSON responses, so each POST stands on
its own and clients need no session id. The SDK owns the JSON-RPC envelope
(initialize, ping, tools/list, parse and envelope errors). Tool failures come
back as tool errors (isError) whose text starts with the error code, e.g.
"service_unavailable: ..." or "invalid_request: ...".

The license key is read from `Authorization: Bearer sk-...`; the header wins
over `credential` in the tool arguments.
"""
import logging
from typing import Annotated, Any, Dict, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.transport_security import TransportSecuritySettings
from pydantic import Field

from recipe_server.api.deps import parse_bearer
from recipe_server.core.errors import AppError
from recipe_server.core.logging import get_request_id
from recipe_server.features.gateway.service import OPERATIONS, RecipeGateway


logger = logging.getLogger("recipe_server")

SERVER_NAME = "shipswift-recipes"
MCP_PATH = "/mcp"
INSTRUCTIONS = (
    "Recipes are production-ready implementation guides. Free recipes return the full body; "
    "Pro recipes require a license key in the Authorization header."
)


def _header_credential(ctx: Context) -> Optional[str]:
    request = ctx.request_context.request
    if request is None:
        return None
    return parse_bearer(request.headers.get("authorization"))


def build_mcp_server(gateway: RecipeGateway) -> FastMCP:
    """FastMCP server whose tools delegate to the gateway."""
    server = FastMCP(
        SERVER_NAME,
        instructions=INSTRUCTIONS,
        stateless_http=True,
        json_response=True,
        streamable_http_path=MCP_PATH,
        log_level="WARNING",
        # Host checks are left to the ingress in front of the app
        transport_security=TransportSecuritySettings(enable_dns_rebinding_protection=False),
    )

    async def run(operation: str, arguments: Dict[str, Any], ctx: Context) -> Dict[str, Any]:
        log_extra = {"request_id": get_request_id(), "operation": operation, "transport": "mcp"}
        try:
            result = await gateway.dispatch(operation, arguments, credential=_header_credential(ctx))
        except AppError as e:
            logger.warning("mcp.error", extra={**log_extra, "error_code": e.code})
            raise ToolError(f"{e.code}: {e.message}") from e
        except Exception as e:
            logger.exception("mcp.unhandled", extra={**log_extra, "error_code": "internal_error"})
            raise ToolError("internal_error: Internal server error") from e
        return result.model_dump(mode="json")

    @server.tool(name="listRecipes", description=OPERATIONS["listRecipes"].description)
    async def list_recipes(ctx: Context) -> Dict[str, Any]:
        return await run("listRecipes", {}, ctx)

    @server.tool(name="getRecipe", description=OPERATIONS["getRecipe"].description)
    async def get_recipe(
        id: Annotated[str, Field(description="Recipe id, e.g. auth-cognito")],
        ctx: Context,
        credential: Annotated[
            Optional[str], Field(description="License key (sk-...) unlocking Pro recipes")
        ] = None,
    ) -> Dict[str, Any]:
        return await run("getRecipe", {"id": id, "credential": credential}, ctx)

    @server.tool(name="searchRecipes", description=OPERATIONS["searchRecipes"].description)
    async def search_recipes(
        query: Annotated[str, Field(description="Free-text search query")],
        ctx: Context,
        credential: Annotated[
            Optional[str], Field(description="License key (sk-...); search never returns bodies")
        ] = None,
    ) -> Dict[str, Any]:
        return await run("searchRecipes", {"query": query, "credential": credential}, ctx)

    return server

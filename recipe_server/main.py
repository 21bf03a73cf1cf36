import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env from the project root .env
project_dir = Path(__file__).resolve().parent.parent
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=project_dir / ".env")

from recipe_server.api import health, mcp, recipes
from recipe_server.core.config import settings, split_csv, validate_config
from recipe_server.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from recipe_server.core.logging import configure_logging
from recipe_server.core.middleware.ratelimit import RateLimitMiddleware
from recipe_server.core.middleware.request_id import RequestIdMiddleware
from recipe_server.core.ratelimit import build_rate_limit_config
from recipe_server.features.gateway.factory import build_gateway
from recipe_server.features.gateway.service import RecipeGateway

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("recipe_server")
    logger.info("Starting recipe server...")
    # The MCP session manager runs for the life of the app
    async with app.state.mcp_server.session_manager.run():
        try:
            yield
        finally:
            logger.info("Stopping recipe server...")


def create_app(gateway: Optional[RecipeGateway] = None, *, rate_limit_config=None) -> FastAPI:
    """Build the app around a gateway. Without one, the gateway is built from settings."""
    app = FastAPI(title="ShipSwift Recipe Server", version=APP_VERSION, lifespan=lifespan)
    app.state.gateway = gateway or build_gateway(settings)
    app.state.mcp_server = mcp.build_mcp_server(app.state.gateway)

    # Middlewares (last added runs first)
    app.add_middleware(RateLimitMiddleware, config=rate_limit_config or build_rate_limit_config(settings))
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=split_csv(settings.CORS_ALLOWED_ORIGINS) or ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(recipes.router)
    # Streamable HTTP route served by the MCP SDK
    app.router.routes.extend(app.state.mcp_server.streamable_http_app().routes)
    app.include_router(health.router)
    return app


configure_logging(settings.ENV)
validate_config(strict=settings.CONFIG_STRICT)

app = create_app()

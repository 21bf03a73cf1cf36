"""Shared FastAPI dependencies: the gateway and the bearer credential."""
from typing import Optional

from fastapi import Header, Request

from recipe_server.core.errors import InvalidRequestError
from recipe_server.features.gateway.service import RecipeGateway


def get_gateway(request: Request) -> RecipeGateway:
    return request.app.state.gateway


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the license key from an Authorization header.

    No header (or an empty one) is the free tier, not an error. A header in
    any other scheme than Bearer is malformed.
    """
    if authorization is None or not authorization.strip():
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise InvalidRequestError("Malformed Authorization header (expected 'Bearer <license key>')")
    token = token.strip()
    return token or None


async def bearer_credential(authorization: Optional[str] = Header(None)) -> Optional[str]:
    return parse_bearer(authorization)

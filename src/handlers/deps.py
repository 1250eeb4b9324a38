"""Shared FastAPI dependencies for the HTTP handlers."""

import logging

from fastapi import Header, Request

from src.errors import Unauthorized

logger = logging.getLogger(__name__)


def get_server(request: Request):
    """The MarketplaceServer attached to the running app."""
    return request.app.state.server


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an 'Authorization: Bearer <token>' header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_user_id(request: Request, authorization: str | None = Header(None)) -> str:
    """Resolve the caller's user id or raise Unauthorized."""
    token = bearer_token(authorization)
    if not token:
        raise Unauthorized("missing bearer token")

    user_id = await get_server(request).identity.verify(token)
    if not user_id:
        logger.info("Rejected request with invalid access token")
        raise Unauthorized("invalid access token")
    return user_id

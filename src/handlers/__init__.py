"""HTTP route handlers."""

from src.handlers.accounts import router as accounts_router
from src.handlers.listings import router as listings_router
from src.handlers.messages import router as messages_router

__all__ = ["accounts_router", "listings_router", "messages_router"]

"""Main server - wires storage, services and HTTP routes, schedules index rebuilds."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.auth.identity import IdentityProvider, SupabaseIdentityProvider
from src.config.settings import Settings
from src.errors import Forbidden, MarketplaceError, StorageUnavailable
from src.handlers import accounts_router, listings_router, messages_router
from src.repository.entities import EntityRepository
from src.repository.indexes import IndexMaintainer, RebuildResult
from src.services.account_service import AccountService
from src.services.listing_service import ListingService
from src.services.message_service import MessageService
from src.storage.kv_store import KeyValueStore, SQLiteKVStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class MarketplaceServer:
    """Main server class that owns every component for the app's lifetime."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
        identity: IdentityProvider | None = None,
    ):
        self.settings = settings or Settings.load()
        self.store = store or SQLiteKVStore(self.settings.db_path, timeout=self.settings.kv_timeout)
        self.identity = identity or SupabaseIdentityProvider(
            self.settings.supabase_url,
            self.settings.supabase_anon_key,
            self.settings.supabase_service_role_key,
        )
        self.indexes = IndexMaintainer(self.store)
        self.repository = EntityRepository(self.store, self.indexes)
        self.listings = ListingService(self.repository)
        self.messages = MessageService(self.repository, self.indexes, self.settings)
        self.accounts = AccountService(self.repository, self.identity, self.settings)
        self.scheduler = AsyncIOScheduler()
        self.last_rebuild: datetime | None = None

    async def rebuild_indexes(self) -> RebuildResult:
        """Recompute the derived indexes from a full entity scan."""
        logger.info("Starting index rebuild...")
        result = await self.indexes.rebuild()
        self.last_rebuild = datetime.now()
        return result

    async def _scheduled_rebuild(self):
        try:
            await self.rebuild_indexes()
        except StorageUnavailable as e:
            logger.error(f"Scheduled index rebuild failed: {e}")

    async def startup(self):
        """Initialize server components."""
        errors = self.settings.validate()
        if errors:
            for error in errors:
                logger.warning(f"Config warning: {error}")

        await self.store.connect()

        schedule = self.settings.rebuild_schedule()
        if schedule:
            hour, minute = schedule
            self.scheduler.add_job(
                self._scheduled_rebuild,
                CronTrigger(hour=hour, minute=minute),
                id="index_rebuild",
                replace_existing=True,
            )
            self.scheduler.start()
            logger.info(f"Scheduled daily index rebuild at {self.settings.index_rebuild_time}")

    async def shutdown(self):
        """Clean up server components."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.store.close()
        await self.identity.close()


async def handle_marketplace_error(request: Request, exc: MarketplaceError) -> JSONResponse:
    if isinstance(exc, StorageUnavailable):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse({"error": exc.to_public()}, status_code=exc.status_code)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return JSONResponse({"error": "; ".join(problems) or "Invalid request"}, status_code=400)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(server: MarketplaceServer | None = None) -> FastAPI:
    """Build the FastAPI app; a server is created at startup if none is given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """FastAPI lifespan handler."""
        app.state.server = server or MarketplaceServer()
        await app.state.server.startup()
        yield
        await app.state.server.shutdown()

    app = FastAPI(title="Campus Marketplace", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_headers=["Content-Type", "Authorization"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        expose_headers=["Content-Length"],
        max_age=600,
    )
    app.add_exception_handler(MarketplaceError, handle_marketplace_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(accounts_router)
    app.include_router(listings_router)
    app.include_router(messages_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        last_rebuild = app.state.server.last_rebuild
        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "lastIndexRebuild": last_rebuild.isoformat() if last_rebuild else None,
        }

    @app.post("/admin/rebuild-indexes")
    async def trigger_rebuild(request: Request, x_admin_token: str | None = Header(None)):
        """Manual index rebuild trigger endpoint."""
        current = request.app.state.server
        if not current.settings.admin_token or x_admin_token != current.settings.admin_token:
            raise Forbidden("invalid admin token")
        result = await current.rebuild_indexes()
        return {"status": "ok", **result.to_dict()}

    return app


app = create_app()


def main():
    """Entry point for running the server."""
    import uvicorn

    settings = Settings.load()
    logging.getLogger().setLevel(settings.log_level.upper())
    uvicorn.run(
        "src.server:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()

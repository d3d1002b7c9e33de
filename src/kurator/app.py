"""FastAPI application factory for Kurator."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kurator.common.config import get_settings
from kurator.common.exceptions import KuratorError
from kurator.common.logging import setup_logging
from kurator.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from kurator.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        logger.info("Kurator started", extra={"environment": settings.environment})
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(KuratorError)
    async def kurator_error_handler(request: Request, exc: KuratorError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        body = ErrorResponse(error=exc.message, code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from kurator.users.router import router as users_router
    from kurator.blocks.router import router as blocks_router
    from kurator.references.router import router as references_router
    from kurator.contacts.router import router as contacts_router
    from kurator.interactions.router import router as interactions_router
    from kurator.watchlist.router import router as watchlist_router
    from kurator.dashboard.router import router as dashboard_router
    from kurator.audit.router import router as audit_router

    prefix = settings.api_prefix
    app.include_router(users_router, prefix=prefix, tags=["users"])
    app.include_router(blocks_router, prefix=prefix, tags=["blocks"])
    app.include_router(references_router, prefix=prefix, tags=["references"])
    app.include_router(contacts_router, prefix=prefix, tags=["contacts"])
    app.include_router(interactions_router, prefix=prefix, tags=["interactions"])
    app.include_router(watchlist_router, prefix=prefix, tags=["watchlist"])
    app.include_router(dashboard_router, prefix=prefix, tags=["dashboard"])
    app.include_router(audit_router, prefix=prefix, tags=["audit"])

    return app

"""Main FastAPI application for llama-bench reports."""

import argparse
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.config import load_settings
from app.db import BenchmarkStore, open_store
from app.endpoints.api_endpoints import api_router
from app.endpoints.web_endpoints import web_router
from app.errors import ValidationError

logger = logging.getLogger(__name__)


def create_app(store: BenchmarkStore | None = None) -> FastAPI:
    """
    Build the application around a store.

    Without a store, one is opened from the environment settings at startup
    and disposed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.store is None
        if owned:
            app.state.store = open_store(load_settings().database_url)
        yield
        if owned:
            app.state.store.dispose()
            app.state.store = None

    app = FastAPI(
        title="Llama Bench Reports",
        description="Collects llama-bench results and serves filtered and aggregated views",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(web_router)

    # Reports must always reflect the latest submissions
    @app.middleware("http")
    async def no_cache_middleware(request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.warning("Rejected request to %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Database error"})

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Llama Bench Reports is running"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def main():
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Llama Bench Reports server")
    parser.add_argument("--host", default=settings.host, help=f"Host to bind to (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Port to listen on (default: {settings.port})")
    parser.add_argument("--db-path", type=Path, default=settings.db_path, help="SQLite database file")
    args = parser.parse_args()
    settings = replace(settings, host=args.host, port=args.port, db_path=args.db_path)

    import uvicorn

    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = open_store(settings.database_url)
    try:
        logger.info("Llama Bench Reports running at http://%s:%s", settings.host, settings.port)
        uvicorn.run(create_app(store), host=settings.host, port=settings.port, log_level=settings.log_level)
    finally:
        store.dispose()


if __name__ == "__main__":
    main()

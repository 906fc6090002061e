# bookwise/main.py

import logging
import os
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from . import auth, categories, expenses
from .config import Settings
from .database import check_connection, init_db, make_engine, make_session_factory
from .errors import BookwiseError
from .logger import configure_logging

logger = logging.getLogger(__name__)


def _field_name(loc) -> str:
    # drop the leading "body" / "query"
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc]
    return ".".join(parts)


def register_error_handlers(app: FastAPI):
    @app.exception_handler(BookwiseError)
    async def handle_domain_error(request: Request, exc: BookwiseError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.title, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": _field_name(err["loc"]), "message": err["msg"]} for err in exc.errors()
        ]
        logger.warning(
            "Validation failed on %s %s: %s", request.method, request.url.path, details
        )
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "message": "Please check the submitted data",
                "details": details,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Server error", "message": "Internal server error"},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)

    engine = make_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title="Bookwise API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    # Session Middleware (cookie signed with SECRET_KEY)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response

    register_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(categories.router)
    app.include_router(expenses.router)

    @app.get("/health")
    def health():
        database_ok = check_connection(app.state.engine)
        return {
            "status": "ok" if database_ok else "degraded",
            "database": "connected" if database_ok else "unavailable",
        }

    logger.info("Bookwise API ready (%s)", settings.app_env)
    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)

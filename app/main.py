"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import (
    AppError,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from app.core.logging import setup_logging, RequestIDMiddleware
from app.infra.db import close_db_connection
from app.realtime.runtime import RealtimeRuntime, build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()

    yield

    # Shutdown
    await close_db_connection()


def create_app(runtime: Optional[RealtimeRuntime] = None) -> FastAPI:
    app = FastAPI(
        title="Social Realtime Backend",
        description="Messaging, presence and notification delivery for the social network",
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # Realtime components live for the lifetime of the app
    app.state.realtime = runtime or build_runtime()

    # Middleware
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    # Routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception Handlers
    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()

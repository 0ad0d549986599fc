"""
MAIN APPLICATION - FastAPI app factory

This is the entry point for building the user service application.
It sets up:
1. FastAPI app with metadata and documentation
2. Request logging middleware (start/end of every request)
3. Exception handlers that wrap every error in the response envelope
4. Route registration for the users API
5. Health check endpoint

Storage is injected: create_app() receives a session factory (or an engine)
that bootstrap() has already verified, and keeps it on app.state.
"""

import time
import uuid
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.config import Settings, load_settings
from app.db import make_session_factory
from app.routes import users
from app.schemas import HealthEnvelope, HealthOut, envelope
from app.utils import (
    Constants, setup_logging, get_logger,
    get_current_timestamp, format_timestamp, format_error_message,
)

logger = get_logger(__name__)

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    """
    Build the application around an already-bootstrapped storage handle.

    Pass either a session_factory or an engine; with only an engine a session
    factory is made from it.
    """
    if settings is None:
        settings = load_settings()
    if session_factory is None:
        if engine is None:
            raise ValueError("create_app needs a session_factory or an engine")
        session_factory = make_session_factory(engine)

    setup_logging(settings.log_level, settings.log_json)

    # STEP 1: Create FastAPI application with metadata
    app = FastAPI(
        title="User Service",
        version=VERSION,
        docs_url="/swagger",     # Interactive Swagger UI for API exploration
        redoc_url="/docs",       # Cleaner ReDoc documentation
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,  # Hide schemas panel by default
        },
    )
    app.state.settings = settings
    app.state.session_factory = session_factory

    # STEP 2: Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        logger.info(f"[{request_id}] {request.method} {request.url.path} - Started")

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[{request_id}] {request.method} {request.url.path} - Failed")
            raise

        process_time = time.time() - start_time
        logger.info(
            f"[{request_id}] {response.status_code} {request.method} {request.url.path}"
            f" - Completed in {process_time:.3f}s"
        )
        return response

    # STEP 3: Every error goes out in the same envelope as successes
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(None, exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info(f"Rejected {request.method} {request.url.path}: {len(errors)} decode error(s)")
        if any(err.get("loc", ())[:1] == ("path",) for err in errors):
            message = "Invalid user id"
        else:
            message = Constants.INVALID_PAYLOAD
        return JSONResponse(status_code=400, content=envelope(None, 400, message))

    @app.exception_handler(ResponseValidationError)
    async def response_validation_handler(request: Request, exc: ResponseValidationError):
        logger.error(f"Response for {request.method} {request.url.path} failed validation: {exc.errors()}")
        return JSONResponse(status_code=500, content=envelope(None, 500, Constants.INTERNAL_ERROR))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error in {request.method} {request.url.path}: {format_error_message(exc)}")
        return JSONResponse(status_code=500, content=envelope(None, 500, Constants.INTERNAL_ERROR))

    # STEP 4: Health check, never touches storage
    @app.get("/health", response_model=HealthEnvelope, tags=["health"])
    def health():
        """
        Liveness probe.

        Returns: {"status": "healthy", "time": "<UTC timestamp>"}
        """
        payload = HealthOut(status=Constants.HEALTHY, time=format_timestamp(get_current_timestamp()))
        return envelope(payload, 200)

    # STEP 5: Register the users API
    app.include_router(users.router, prefix="/users", tags=["users"])

    return app

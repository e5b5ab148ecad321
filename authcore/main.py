"""
Authcore - Main Application
FastAPI service for JWT authentication and session management
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from authcore import __version__
from authcore.auth.exceptions import ValidationException
from authcore.auth.router import create_auth_router
from authcore.container import AuthContainer
from authcore.metrics import observe_request
from authcore.utils.config import Settings, get_settings
from authcore.utils.errors import AppException, ErrorCode, ErrorResponse, InternalError
from authcore.utils.logger import get_logger
from authcore.utils.logging_config import request_id_var, setup_logging

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}
HSTS_POLICY = "max-age=31536000; includeSubDomains"

_HTTP_ERROR_CODES = {
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_var.get() or "unknown"


def _error_response(request: Request, exc: AppException) -> JSONResponse:
    request_id = _request_id(request)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(request_id),
        headers={REQUEST_ID_HEADER: request_id, **SECURITY_HEADERS},
    )


def create_app(
    settings: Optional[Settings] = None, container: Optional[AuthContainer] = None
) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        settings: Overrides the environment settings
        container: Prebuilt collaborators, e.g. with test doubles

    Returns:
        Configured application; the container is on app.state.container
    """
    settings = settings or (container.settings if container else get_settings())
    setup_logging(settings.service_name, log_level=settings.log_level, json_logs=settings.json_logs)

    container = container or AuthContainer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown"""
        logger.info(f"{settings.service_name} starting up...")
        await container.startup()
        yield
        logger.info(f"{settings.service_name} shutting down...")
        await container.shutdown()

    app = FastAPI(
        title="Authcore",
        description="JWT authentication with refresh token rotation and session management",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Service health and status endpoints"},
            {"name": "authentication", "description": "Registration, login and sessions"},
        ],
        responses={
            400: {"model": ErrorResponse, "description": "Validation Error"},
            401: {"model": ErrorResponse, "description": "Unauthorized"},
            500: {"model": ErrorResponse, "description": "Internal Server Error"},
        },
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Exception handlers
    # ------------------------------------------------------------------

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        """Handle typed application exceptions"""
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code.value}: {exc.message}")
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        error = ValidationException(details=details)
        return _error_response(request, error)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        error = AppException(
            str(exc.detail),
            status_code=exc.status_code,
            error_code=_HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.BAD_REQUEST),
        )
        return _error_response(request, error)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        if settings.is_production:
            error = InternalError()
        else:
            error = InternalError(str(exc) or type(exc).__name__)
        return _error_response(request, error)

    # ------------------------------------------------------------------
    # Request id, timing and security headers
    # ------------------------------------------------------------------

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Harden every response, including error envelopes"""
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if settings.is_production:
            response.headers.setdefault("Strict-Transport-Security", HSTS_POLICY)
        return response

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        """Tag the request with an id and log its timing"""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start_time = time.time()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        process_time = (time.time() - start_time) * 1000

        route = request.scope.get("route")
        endpoint = route.path if route is not None else "unmatched"
        observe_request(request.method, endpoint, response.status_code, process_time / 1000)

        container.metrics.log_api_call(
            endpoint=request.url.path,
            method=request.method,
            status_code=response.status_code,
            duration_ms=round(process_time, 2),
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time-Ms"] = str(round(process_time, 2))
        return response

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check endpoint",
        description="Returns service health status and dependencies",
    )
    async def health_check():
        """Health check endpoint - no authentication required"""
        dependencies = await container.health()
        healthy = all(state == "connected" for state in dependencies.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "service": settings.service_name,
            "version": __version__,
            "dependencies": dependencies,
        }

    @app.get(
        "/metrics",
        tags=["Health"],
        summary="Prometheus metrics endpoint",
        description="Returns Prometheus-compatible metrics for monitoring",
    )
    async def metrics_endpoint():
        """Prometheus metrics endpoint"""
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(create_auth_router())

    return app


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(create_app(_settings), host="0.0.0.0", port=_settings.service_port)

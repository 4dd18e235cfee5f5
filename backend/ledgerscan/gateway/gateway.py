"""
API Gateway

Builds the FastAPI application: middleware stack, rate limiter, routers and
the health endpoint.
"""
import os
from typing import List, Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ..core.config import CORS_ORIGINS
from ..core.logging_config import get_logger
from ..middleware.rate_limit import limiter
from .middleware import (
    ErrorHandlingMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
)

logger = get_logger(__name__)

# Innermost first; Starlette runs the last added middleware first
MIDDLEWARE_STACK = [
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    RequestIDMiddleware,
]


class APIGateway:
    """Single entry point for the HTTP API."""

    def __init__(
        self,
        title: str,
        description: str = "",
        version: str = "1.0.0",
        enable_docs: Optional[bool] = None
    ):
        self.title = title
        self.version = version
        if enable_docs is None:
            enable_docs = os.getenv("ENVIRONMENT") != "production"

        self.app = FastAPI(
            title=title,
            description=description,
            version=version,
            docs_url="/docs" if enable_docs else None,
            redoc_url="/redoc" if enable_docs else None
        )
        self.prefixes: List[str] = []

        # slowapi looks the limiter up on app.state; route decorators share it
        self.app.state.limiter = limiter
        self.app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
        logger.info(f"API Gateway initialized (rate limiting {'on' if limiter.enabled else 'off'})")

    def setup_middleware(self, cors_origins: Optional[List[str]] = None):
        for middleware in MIDDLEWARE_STACK:
            self.app.add_middleware(middleware)
            logger.debug(f"  → {middleware.__name__} added")

        origins = [origin.strip() for origin in (cors_origins or CORS_ORIGINS) if origin.strip()]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            # Export downloads need the file name
            expose_headers=["Content-Disposition", "X-Request-ID"],
        )
        logger.info(f"✅ Middleware configured (CORS origins: {', '.join(origins)})")

    def register_router(self, router: APIRouter, prefix: str = "", tags: Optional[List[str]] = None):
        self.app.include_router(router, prefix=prefix, tags=tags or [])
        self.prefixes.append(prefix or "/")
        logger.info(f"Registered {', '.join(tags or ['router'])} at '{prefix or '/'}'")

    def register_health_endpoints(self):
        """GET / for API information, GET /health for readiness."""
        title, version = self.title, self.version

        @self.app.get("/")
        async def root():
            return {"message": f"{title} is running", "version": version, "status": "healthy"}

        @self.app.get("/health")
        async def health_check():
            """
            200 with provider, rate source and batch state once services are
            initialized; 503 before that.
            """
            from ..routers import dependencies

            store, processor = dependencies.record_store, dependencies.batch_processor
            if store is None or processor is None:
                logger.warning("Health check failed: Services not initialized")
                return JSONResponse(
                    status_code=503,
                    content={"status": "unhealthy", "reason": "Services not initialized"}
                )

            batch = processor.status()
            return {
                "status": "healthy",
                "database": "connected",
                "remote_mirror": store.has_mirror,
                "provider": batch["provider"],
                "provider_is_remote": batch["provider_is_remote"],
                "rates_source": batch["rates_source"],
                "batch_state": batch["state"],
            }

    def get_app(self) -> FastAPI:
        return self.app

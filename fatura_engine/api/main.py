"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from fatura_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from fatura_engine.api.v1 import anticipation, statements
from fatura_engine.infrastructure.observability.logging import setup_logging
from fatura_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Fatura Engine",
        description="Credit card statement cycles, status and installment anticipation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(statements.router, prefix="/v1", tags=["statements"])
    app.include_router(anticipation.router, prefix="/v1", tags=["anticipation"])

    return app


app = create_app()

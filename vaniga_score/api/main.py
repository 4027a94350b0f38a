"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from vaniga_score.api.middleware import RequestIDMiddleware, MetricsMiddleware
from vaniga_score.api.v1 import admin, businesses, customers, dashboard, transactions
from vaniga_score.infrastructure.database.session import init_db
from vaniga_score.infrastructure.observability.logging import setup_logging
from vaniga_score.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="VanigaScore Service",
        description="Micro-business ledger with a transaction-derived credit score",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
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
    app.include_router(businesses.router, prefix="/v1", tags=["businesses"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(customers.router, prefix="/v1", tags=["customers"])
    app.include_router(dashboard.router, prefix="/v1", tags=["dashboard"])
    app.include_router(admin.router, prefix="/v1", tags=["admin"])

    return app


app = create_app()

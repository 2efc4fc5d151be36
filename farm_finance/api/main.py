"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from farm_finance.api.middleware import RequestIDMiddleware, MetricsMiddleware
from farm_finance.api.v1 import credit, farms, finance, preview, sales, state
from farm_finance.config import settings
from farm_finance.domain.context import EngineContext, build_context
from farm_finance.infrastructure.database.models import Base
from farm_finance.infrastructure.database.session import engine
from farm_finance.infrastructure.host import InMemoryFarmHost
from farm_finance.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


def create_app(context: Optional[EngineContext] = None) -> FastAPI:
    """Create and configure FastAPI application around an engine context"""
    app = FastAPI(
        title="Farm Finance Engine",
        description="Credit scoring, equipment and land financing, and agent-based vehicle sales",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.context = context or build_context(InMemoryFarmHost(), settings)

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
    app.include_router(farms.router, prefix="/v1", tags=["farms"])
    app.include_router(credit.router, prefix="/v1", tags=["credit"])
    app.include_router(preview.router, prefix="/v1", tags=["previews"])
    app.include_router(finance.router, prefix="/v1", tags=["finance"])
    app.include_router(sales.router, prefix="/v1", tags=["sales"])
    app.include_router(state.router, prefix="/v1", tags=["state"])

    return app


app = create_app()

"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finance_cycle.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finance_cycle.api.v1 import cycles, ledger, liabilities, schedule, simulation
from finance_cycle.infrastructure.observability.logging import setup_logging
from finance_cycle.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Finance Cycle Service",
        description="Recurring finance cycles, liability simulation and double-entry ledger",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(cycles.router, prefix="/v1", tags=["cycles"])
    app.include_router(simulation.router, prefix="/v1", tags=["simulation"])
    app.include_router(ledger.router, prefix="/v1", tags=["ledger"])
    app.include_router(liabilities.router, prefix="/v1", tags=["liabilities"])
    app.include_router(schedule.router, prefix="/v1", tags=["schedule"])

    return app


app = create_app()

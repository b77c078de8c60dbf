# backend/marketplace/main.py
from contextlib import asynccontextmanager
import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import FastAPI, Response
from sqlalchemy import text

from .core.config import is_running_tests, settings
from .core.request_context import configure_logging
from .database import SessionLocal
from .errors import register_error_handlers
from .middleware.prometheus_middleware import METRICS_PATH, PrometheusMiddleware
from .middleware.request_id import RequestIdMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import api_v1

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info("Marketplace API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    if settings.redis_url is None:
        logger.warning("REDIS_URL not set; schedule locks are process-local")

    yield

    logger.info("Marketplace API shutting down...")


app = FastAPI(
    title="Car Marketplace API",
    description="Reservations, rate negotiation and driver hiring",
    version="1.0.0",
    lifespan=app_lifespan,
)

register_error_handlers(app)

# Add middleware in reverse order of execution
app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestIdMiddleware)

app.include_router(api_v1)


@app.get("/health")
def health_check() -> Dict[str, Any]:
    """Liveness plus a cheap database round trip."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.error(f"Health check database error: {str(e)}")
        database = "unavailable"
    finally:
        db.close()
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "environment": settings.environment,
        "database": database,
    }


@app.get(METRICS_PATH, include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )

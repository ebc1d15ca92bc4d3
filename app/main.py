import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.cache import create_redis_client
from app.core.config import settings
from app.core.errors import WeatherError
from app.core.init_db import init_db
from app.core.logging import configure_logging
from app.routers.health import router as health_router
from app.routers.weather import router as weather_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    On startup:
    - Initializes the database schema (development/MVP setup).
    - Creates the shared Redis client used by the weather cache.

    On shutdown:
    - Closes the Redis connection pool.
    """
    await init_db()
    app.state.redis = create_redis_client()
    logger.info("%s started (environment=%s)", settings.app_name, settings.environment)
    yield
    await app.state.redis.aclose()


async def weather_error_handler(request: Request, exc: WeatherError) -> JSONResponse:
    """
    Translate a domain error into its HTTP response.

    NotFound -> 404, UpstreamError -> upstream status (500 by default),
    InvalidRecordError -> 422, TransportError/InternalError -> 500.
    """
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": exc.message},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
    - Configures logging.
    - Initializes the FastAPI app with metadata and documentation endpoints.
    - Registers the domain error handler.
    - Registers all API routers.
    - Applies the application lifespan handler.

    Returns:
        Configured FastAPI application instance.
    """
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description="Weather API: cached OpenWeatherMap lookups and stored weather records",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(WeatherError, weather_error_handler)

    # Register API routers
    app.include_router(health_router)
    app.include_router(weather_router)

    return app


# Application entry point
app = create_app()

"""
Skycast FastAPI service — normalized OpenWeatherMap data behind a short cache.

Entrypoint: uvicorn services.skycast.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from services.skycast.config import settings
from services.skycast.middleware.cors import setup_cors
from services.skycast.middleware.sentry import setup_sentry
from services.skycast.routers import health, weather
from services.skycast.weather.cache import weather_cache
from services.skycast.weather.service import WeatherService

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_weather_service() -> WeatherService:
    """WeatherService wired to settings and the process-wide cache."""
    return WeatherService(
        api_key=settings.openweathermap_api_key,
        cache=weather_cache,
        base_url=settings.openweathermap_base_url,
        timeout=settings.weather_api_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_logging()
    setup_sentry()

    if not settings.openweathermap_api_key:
        raise RuntimeError("OPENWEATHERMAP_API_KEY is not set")

    app.state.settings = settings
    app.state.weather_service = build_weather_service()
    logger.info(
        "Weather service ready: base_url=%s cache_ttl=%.0fs",
        settings.openweathermap_base_url,
        weather_cache.ttl_seconds,
    )

    yield


app = FastAPI(
    title="Skycast API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(weather.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection
@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# -- Exception Handlers --

@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Resource not found."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {"code": "VALIDATION_ERROR", "message": message or "Validation error."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )

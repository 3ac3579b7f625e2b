"""
Weather endpoint — GET /weather

Wraps WeatherService for HTTP consumers.
  /weather?location=London
  /weather?lat=51.5074&lon=-0.1278

Returns the API envelope with a camelCase WeatherSnapshot. Bad queries are
422 VALIDATION_ERROR; provider failures are 502 UPSTREAM_ERROR with the
provider's status code.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

from services.skycast.weather.errors import UpstreamError, WeatherValidationError

router = APIRouter(tags=["weather"])


def _error(request: Request, status_code: int, code: str, message: str, **extra) -> JSONResponse:
    error = {"code": code, "message": message, **extra}
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "requestId": request.state.request_id,
        },
    )


@router.get("/weather")
async def get_weather(
    request: Request,
    location: str | None = Query(None, max_length=200, description="City name, e.g. London"),
    lat: float | None = Query(None, ge=-90, le=90, description="Latitude"),
    lon: float | None = Query(None, ge=-180, le=180, description="Longitude"),
):
    service = request.app.state.weather_service

    try:
        snapshot = await service.get_weather({"location": location, "lat": lat, "lon": lon})
    except WeatherValidationError as exc:
        return _error(request, 422, "VALIDATION_ERROR", str(exc))
    except UpstreamError as exc:
        return _error(
            request,
            502,
            "UPSTREAM_ERROR",
            f"Weather provider returned {exc.status_code}.",
            upstreamStatus=exc.status_code,
        )

    return {
        "success": True,
        "data": snapshot.model_dump(mode="json", by_alias=True),
        "requestId": request.state.request_id,
    }

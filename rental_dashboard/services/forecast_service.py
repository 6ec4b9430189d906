from __future__ import annotations

import asyncio

from pydantic import ValidationError

from schemas.forecast import ForecastPointDto
from services.api_client import RentalApiError, post_json


RUN_FORECAST_PATH = "/admin/run-forecast"


class ForecastServiceError(RuntimeError):
    pass


class ForecastService:
    def __init__(self, path: str = RUN_FORECAST_PATH, post=post_json):
        self._path = path
        self._post = post

    async def run_forecast(self, equipment_id: str) -> dict[str, list[ForecastPointDto]]:
        if not equipment_id:
            raise ForecastServiceError("No equipment available for forecasting")
        try:
            body = await asyncio.to_thread(self._post, self._path, {"equipmentId": equipment_id})
        except RentalApiError as exc:
            raise ForecastServiceError(str(exc)) from exc

        if not body.get("success"):
            raise ForecastServiceError(str(body.get("message") or "Forecast failed"))

        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise ForecastServiceError("Forecast payload is not keyed by equipment type")
        series: dict[str, list[ForecastPointDto]] = {}
        try:
            for type_id, rows in data.items():
                series[str(type_id)] = [ForecastPointDto.model_validate(row) for row in rows or []]
        except (TypeError, ValidationError) as exc:
            raise ForecastServiceError("Forecast payload has malformed points") from exc
        return series

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.orm import Session

try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    pass

from db.base import Base
from db.deps import get_dashboard_db
from db.session import engine_dashboard
from models.dashboard_models import NegotiationAudit
from schemas.contracts import ContractRequestDto
from schemas.forecast import ChartRequest, RunForecastRequest
from schemas.negotiation import NegotiationState
from services.chart_service import (
    DegenerateSeries,
    line_color_for,
    render,
    render_svg,
    summarize_series,
    trend_labels,
)
from services.contract_service import ContractService
from services.forecast_service import ForecastService, ForecastServiceError
from services.negotiation_controller import InvalidRetryState, NegotiationController
from services.negotiation_registry import (
    clear_negotiations,
    close_negotiation,
    get_negotiation,
    open_negotiation,
    prune_expired_negotiations,
)

NEGOTIATION_LOGGER = logging.getLogger("rental_dashboard.negotiation")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    Base.metadata.create_all(engine_dashboard)
    yield
    clear_negotiations()


app = FastAPI(lifespan=lifespan)


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1,http://localhost,http://127.0.0.1:5173,http://localhost:5173",
)
_CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"]
)


def get_contract_service() -> ContractService:
    return ContractService()


def get_forecast_service() -> ForecastService:
    return ForecastService()


def log_negotiation_event(db: Session, negotiation_id: str, action: str, state: NegotiationState, details: str | None = None) -> None:
    db.add(
        NegotiationAudit(
            NegotiationID=negotiation_id,
            Action=action,
            Phase=state.phase.value,
            Status=state.outcome.status if state.outcome is not None else None,
            Details=details or state.errorMessage,
            CreatedAt=datetime.now(),
        )
    )


def _audit_negotiation_event(db: Session, negotiation_id: str, action: str, state: NegotiationState) -> None:
    try:
        log_negotiation_event(db, negotiation_id, action, state)
        db.commit()
    except Exception:
        NEGOTIATION_LOGGER.exception("Audit write failed negotiation=%s action=%s", negotiation_id, action)
        db.rollback()


def _require_negotiation(negotiation_id: str) -> NegotiationController:
    controller = get_negotiation(negotiation_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Negotiation not found")
    return controller


def _serialize_negotiation(negotiation_id: str, controller: NegotiationController) -> dict:
    last_request = controller.last_request
    return {
        "negotiationId": negotiation_id,
        "state": controller.state.to_payload(),
        "busy": controller.is_busy,
        "retrying": controller.retrying,
        "lastRequest": last_request.model_dump(mode="json") if last_request is not None else None,
    }


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/healthz")
def healthcheck_api(db: Session = Depends(get_dashboard_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"db_unavailable: {exc}") from exc


@app.post("/api/negotiations")
def create_negotiation(service: ContractService = Depends(get_contract_service)):
    pruned = prune_expired_negotiations()
    if pruned:
        NEGOTIATION_LOGGER.info("Pruned expired negotiations count=%s", pruned)
    negotiation_id, controller = open_negotiation(service)
    return _serialize_negotiation(negotiation_id, controller)


@app.get("/api/negotiations/{negotiation_id}")
def get_negotiation_state(negotiation_id: str):
    controller = _require_negotiation(negotiation_id)
    return _serialize_negotiation(negotiation_id, controller)


@app.post("/api/negotiations/{negotiation_id}/submit")
async def submit_contract_request(
    negotiation_id: str,
    payload: ContractRequestDto,
    db: Session = Depends(get_dashboard_db),
):
    controller = _require_negotiation(negotiation_id)
    state = await controller.submit(payload)
    _audit_negotiation_event(db, negotiation_id, "Submit", state)
    return _serialize_negotiation(negotiation_id, controller)


@app.post("/api/negotiations/{negotiation_id}/retry-partial")
async def retry_with_partial(negotiation_id: str, db: Session = Depends(get_dashboard_db)):
    controller = _require_negotiation(negotiation_id)
    try:
        state = await controller.retry_with_partial()
    except InvalidRetryState as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    _audit_negotiation_event(db, negotiation_id, "RetryWithPartial", state)
    return _serialize_negotiation(negotiation_id, controller)


@app.post("/api/negotiations/{negotiation_id}/reset")
def reset_negotiation(negotiation_id: str, db: Session = Depends(get_dashboard_db)):
    controller = _require_negotiation(negotiation_id)
    state = controller.reset()
    _audit_negotiation_event(db, negotiation_id, "Reset", state)
    return _serialize_negotiation(negotiation_id, controller)


@app.delete("/api/negotiations/{negotiation_id}")
def delete_negotiation(negotiation_id: str):
    if not close_negotiation(negotiation_id):
        raise HTTPException(status_code=404, detail="Negotiation not found")
    return {"ok": True}


@app.post("/api/forecast/run")
async def run_forecast(payload: RunForecastRequest, service: ForecastService = Depends(get_forecast_service)):
    try:
        series = await service.run_forecast(payload.equipmentId)
    except ForecastServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    forecasts = []
    for type_id, rows in series.items():
        equipment_name = payload.equipmentNames.get(type_id, type_id)
        points = [row.to_series_point() for row in rows]
        forecasts.append(
            {
                "equipmentTypeId": type_id,
                "equipmentName": equipment_name,
                "lineColor": line_color_for(equipment_name),
                "data": [row.model_dump() for row in rows],
                "trend": trend_labels(points),
                "summary": summarize_series(points) if points else None,
            }
        )
    return {"success": True, "forecasts": forecasts}


@app.post("/api/forecast/chart")
def forecast_chart(payload: ChartRequest, output_format: str = Query("svg", alias="format")):
    stroke_color = payload.strokeColor or line_color_for(payload.equipmentType)
    try:
        if output_format == "commands":
            commands = render(payload.points, payload.width, payload.height, stroke_color)
            return {"commands": [command.to_payload() for command in commands]}
        if output_format != "svg":
            raise HTTPException(status_code=400, detail="format must be svg or commands.")
        svg = render_svg(payload.points, payload.width, payload.height, stroke_color)
    except DegenerateSeries as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Response(content=svg, media_type="image/svg+xml")

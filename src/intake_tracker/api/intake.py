"""Temp-intake API endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from intake_tracker.api.intake_models import (
    AddAnalysisPayload,
    AnalyzeFoodPayload,
    FoodEntryPayload,
)
from intake_tracker.domain.analysis import Malformed, Parsed
from intake_tracker.domain.errors import (
    ConflictError,
    IntakeError,
    StorageError,
    ValidationError,
)
from intake_tracker.domain.intake import parse_day
from intake_tracker.domain.serialization import (
    aggregate_to_dict,
    entry_to_dict,
    period_to_dict,
    record_to_dict,
    totals_to_dict,
)
from intake_tracker.services.analysis import food_data_from_analysis
from intake_tracker.services.auth import parse_bearer_token

if TYPE_CHECKING:
    from intake_tracker.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/temp-intake", tags=["temp-intake"])

_ERROR_STATUS: dict[type[IntakeError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_owner(
    request: Request, authorization: str | None = Header(default=None)
) -> str:
    """Resolve the caller's owner id from a verified bearer token."""
    token = parse_bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing bearer token"},
        )
    owner_id = _container(request).token_verifier.verify(token)
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token"},
        )
    return owner_id


def _http_error(exc: IntakeError, message: str) -> HTTPException:
    code = next(
        (value for kind, value in _ERROR_STATUS.items() if isinstance(exc, kind)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s: %s", message, exc)
        return HTTPException(status_code=code, detail={"error": message})
    return HTTPException(status_code=code, detail={"error": message, "reason": str(exc)})


@router.post("/add", status_code=status.HTTP_201_CREATED)
async def add_entry(
    payload: FoodEntryPayload,
    request: Request,
    owner_id: str = Depends(require_owner),
) -> dict[str, object]:
    """Add a food entry to today's intake."""
    try:
        entry = await _container(request).intake_service.add_entry(
            owner_id, payload.model_dump()
        )
    except IntakeError as exc:
        raise _http_error(exc, "Failed to add food entry") from exc
    return {"success": True, "data": entry_to_dict(entry)}


@router.get("/today")
async def get_today(
    request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Return today's entries and totals."""
    try:
        aggregate = await _container(request).intake_service.get_today(owner_id)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to get daily intake") from exc
    return {"success": True, "data": aggregate_to_dict(aggregate)}


@router.get("/archive-dates")
async def list_archive_dates(
    request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Return archived days, most recent first."""
    try:
        days = await _container(request).intake_service.list_archive_dates(owner_id)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to get archive dates") from exc
    return {"success": True, "data": [day.isoformat() for day in days]}


@router.get("/archive/{raw_date}")
async def get_archived(
    raw_date: str, request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Return the archived intake for a YYYY-MM-DD date."""
    try:
        day = parse_day(raw_date)
        record = await _container(request).intake_service.get_archived(owner_id, day)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to get archived intake") from exc
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": f"No archived intake for {raw_date}"},
        )
    return {"success": True, "data": record_to_dict(record)}


@router.post("/reset")
async def reset_daily(
    request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Archive today's intake now and start a fresh day."""
    try:
        record = await _container(request).intake_service.manual_reset(owner_id)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to reset daily intake") from exc
    if record is None:
        return {"success": True, "data": {"archived": False}}
    return {
        "success": True,
        "data": {
            "archived": True,
            "date": record.day.isoformat(),
            "totals": totals_to_dict(record.totals),
        },
    }


@router.get("/week")
async def get_week(
    request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Return the last seven days of totals."""
    try:
        summary = await _container(request).intake_service.get_week(owner_id)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to get weekly intake") from exc
    return {"success": True, "data": period_to_dict(summary)}


@router.get("/month")
async def get_month(
    request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Return month-to-date totals."""
    try:
        summary = await _container(request).intake_service.get_month(owner_id)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to get monthly intake") from exc
    return {"success": True, "data": period_to_dict(summary)}


@router.post("/analyze", dependencies=[Depends(require_owner)])
async def analyze_food(
    payload: AnalyzeFoodPayload, request: Request
) -> dict[str, object]:
    """Analyze a food by name without storing it."""
    result = await _container(request).analysis_service.analyze_by_name(
        payload.food_name, payload.health_conditions
    )
    if isinstance(result, Parsed):
        return {
            "success": True,
            "status": "parsed",
            "data": result.analysis.model_dump(),
            "entry": food_data_from_analysis(result.analysis),
        }
    if isinstance(result, Malformed):
        return {"success": False, "status": "malformed", "raw_text": result.raw_text}
    return {"success": False, "status": "provider_error", "reason": result.reason}


@router.post("/add-analysis", status_code=status.HTTP_201_CREATED)
async def add_analysis(
    payload: AddAnalysisPayload,
    request: Request,
    owner_id: str = Depends(require_owner),
) -> dict[str, object]:
    """Store an analysis result as an intake entry."""
    try:
        entry = await _container(request).intake_service.add_analysis(
            owner_id, payload.analysis, payload.image
        )
    except IntakeError as exc:
        raise _http_error(exc, "Failed to add analyzed food") from exc
    return {"success": True, "data": entry_to_dict(entry)}


@router.delete("/{entry_id}")
async def remove_entry(
    entry_id: str, request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Remove an entry from today's intake; unknown ids succeed."""
    try:
        await _container(request).intake_service.remove_entry(owner_id, entry_id)
    except IntakeError as exc:
        raise _http_error(exc, "Failed to remove food entry") from exc
    return {"success": True, "message": "Food entry removed"}

"""Leaderboard endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID
import logging

from rideboard.config import get_settings
from rideboard.database import get_db
from rideboard.dependencies import get_current_subject_id
from rideboard.models.leaderboard import LeaderboardSnapshot
from rideboard.schemas.leaderboard import LeaderboardPositionResponse, LeaderboardResponse
from rideboard.services.leaderboard import (
    LeaderboardRequest,
    LeaderboardService,
    LeaderboardSourceError,
    LeaderboardValidationError,
    locate,
    user_status,
)
from rideboard.utils.datetime_helpers import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter()

SOURCE_UNAVAILABLE = "leaderboard_source_unavailable"


def _source_unavailable_response() -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": SOURCE_UNAVAILABLE, "retryable": True})


def _validate(
    service: LeaderboardService,
    metric: str,
    period_kind: str,
    date: Optional[str],
    scope: Optional[str],
    geo_code: Optional[str],
) -> LeaderboardRequest:
    try:
        return service.validate_request(metric, period_kind, date, scope, geo_code)
    except LeaderboardValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


async def _load_snapshot(
    service: LeaderboardService,
    request: LeaderboardRequest,
    force_refresh: bool,
) -> tuple[Optional[LeaderboardSnapshot], bool]:
    """Return ``(snapshot, stale)``; snapshot is None when nothing can be served."""
    try:
        snapshot = await service.get_or_generate(
            request.metric,
            request.period_kind,
            request.reference,
            request.scope,
            request.geo_qualifier,
            force_refresh=force_refresh,
        )
        return snapshot, False
    except LeaderboardSourceError:
        if not get_settings().leaderboard_serve_stale_on_failure:
            return None, False
        cached = await service.get_cached(
            request.metric,
            request.period_kind,
            request.reference,
            request.scope,
            request.geo_qualifier,
        )
        if cached is not None:
            logger.warning(f"Serving stale {request.metric.value}/{request.period_kind.value} leaderboard")
        return cached, cached is not None


@router.get("/{metric}/{period_kind}", response_model=LeaderboardResponse)
async def get_leaderboard(
    metric: str,
    period_kind: str,
    date: Optional[str] = Query(default=None),
    scope: Optional[str] = Query(default=None),
    geo_code: Optional[str] = Query(default=None, alias="geoCode"),
    force_refresh: bool = Query(default=False, alias="forceRefresh"),
    subject_id: UUID = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """Get (and materialize if needed) a leaderboard with the caller's standing."""
    service = LeaderboardService(db)
    request = _validate(service, metric, period_kind, date, scope, geo_code)

    snapshot, stale = await _load_snapshot(service, request, force_refresh)
    if snapshot is None:
        return _source_unavailable_response()

    entries = service.entries_of(snapshot)
    return LeaderboardResponse(
        metric=snapshot.metric,
        period_kind=snapshot.period_kind,
        period_id=snapshot.period_id,
        start_date=ensure_utc(snapshot.start_date),
        end_date=ensure_utc(snapshot.end_date),
        scope=snapshot.scope,
        geo_qualifier=snapshot.geo_qualifier or None,
        entries=[entry.to_dict() for entry in entries],
        updated_at=ensure_utc(snapshot.updated_at),
        is_valid=snapshot.is_valid,
        stale=stale,
        user_status=user_status(entries, subject_id),
    )


@router.get(
    "/{metric}/{period_kind}/position",
    response_model=LeaderboardPositionResponse,
    response_model_exclude_none=True,
)
async def get_leaderboard_position(
    metric: str,
    period_kind: str,
    date: Optional[str] = Query(default=None),
    scope: Optional[str] = Query(default=None),
    geo_code: Optional[str] = Query(default=None, alias="geoCode"),
    subject_id: UUID = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's rank, percentile and movement in a leaderboard."""
    service = LeaderboardService(db)
    request = _validate(service, metric, period_kind, date, scope, geo_code)

    snapshot, _ = await _load_snapshot(service, request, force_refresh=False)
    if snapshot is None:
        return _source_unavailable_response()

    position = locate(service.entries_of(snapshot), subject_id)
    if not position.present:
        return LeaderboardPositionResponse(
            in_leaderboard=False,
            message="User not in leaderboard for this period",
        )

    return LeaderboardPositionResponse(
        in_leaderboard=True,
        rank=position.rank,
        value=position.value,
        total=position.total,
        percentile=position.percentile,
        change=position.change,
    )

"""Crossing status REST API endpoints."""

from fastapi import APIRouter, HTTPException, Query

from crossing_monitor.schemas.reading import Reading
from crossing_monitor.schemas.route import CrossingStatus, StatusSnapshot

router = APIRouter(prefix="/api", tags=["crossings"])

# Will be set by main.py
query = None


def _require_query():
    if query is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return query


@router.get("/data", response_model=StatusSnapshot)
async def get_data():
    """Current state of every crossing with each route's latest reading."""
    return _require_query().snapshot()


@router.get("/crossings", response_model=list[CrossingStatus])
async def list_crossings():
    return _require_query().snapshot().crossings


@router.get("/crossings/{crossing_id}", response_model=CrossingStatus)
async def get_crossing(crossing_id: str):
    status = _require_query().crossing_status(crossing_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Crossing not found")
    return status


@router.get("/crossings/{crossing_id}/recent", response_model=list[Reading])
async def get_crossing_recent(crossing_id: str, limit: int = Query(80, ge=1, le=1000)):
    """History table for one crossing, newest first."""
    q = _require_query()
    if q.get_crossing(crossing_id) is None:
        raise HTTPException(status_code=404, detail="Crossing not found")
    return q.recent_feed(limit=limit, crossing_id=crossing_id)


@router.get("/recent", response_model=list[Reading])
async def get_recent(limit: int = Query(40, ge=1, le=1000)):
    """Latest readings across all crossings, newest first."""
    return _require_query().recent_feed(limit=limit)

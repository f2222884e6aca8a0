"""Per-route REST API endpoints."""

from fastapi import APIRouter, HTTPException, Query

from crossing_monitor.schemas.reading import Reading, SeriesWindow

router = APIRouter(prefix="/api/routes", tags=["routes"])

# Will be set by main.py
query = None


def _route_query(route_id: str):
    if query is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    if not query.has_route(route_id):
        raise HTTPException(status_code=404, detail="Route not found")
    return query


@router.get("/{route_id}/latest", response_model=Reading | None)
async def get_latest(route_id: str):
    return _route_query(route_id).latest(route_id)


@router.get("/{route_id}/readings", response_model=list[Reading])
async def get_readings(route_id: str, limit: int = Query(100, ge=1, le=1000)):
    """Most recent readings held in memory, oldest first."""
    return _route_query(route_id).recent(route_id, limit)


@router.get("/{route_id}/series", response_model=SeriesWindow)
async def get_series(
    route_id: str,
    hours: float = Query(12, gt=0, le=168),
    limit: int = Query(144, ge=1, le=1000),
):
    """Time series for charting live against normal travel time."""
    return _route_query(route_id).series(route_id, hours=hours, limit=limit)

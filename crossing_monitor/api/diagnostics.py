"""Diagnostics API for the polling pipeline."""

from fastapi import APIRouter

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

# Will be set by main.py
poller = None


@router.get("")
async def get_diagnostics():
    """Poller state, last cycle outcome and per-route failure counters."""
    if poller is None:
        return {"error": "Poller not initialized"}
    return poller.get_diagnostics()


@router.get("/routes/{route_id}")
async def get_route_diagnostics(route_id: str):
    """Failure counters for one route."""
    if poller is None:
        return {"error": "Poller not initialized"}
    diag = poller.get_diagnostics()
    for r in diag["routes"]:
        if r["route_id"] == route_id:
            return r
    return {"error": "Route not found"}

"""Async client for the TomTom routing and traffic flow APIs."""

import logging
import math
from dataclasses import dataclass

import httpx

from crossing_monitor.config import settings
from crossing_monitor.core.telemetry import Telemetry
from crossing_monitor.exceptions import UpstreamError
from crossing_monitor.schemas.reading import SpeedSample
from crossing_monitor.schemas.route import GeoPoint

logger = logging.getLogger(__name__)

ROUTING_PATH = "/routing/1/calculateRoute/{origin}:{destination}/json"
FLOW_PATH = "/traffic/services/4/flowSegmentData/absolute/10/json"

# Flags asking TomTom for both traffic-aware and traffic-free estimates
ROUTING_PARAMS = {
    "traffic": "true",
    "travelMode": "car",
    "routeType": "fastest",
    "computeTravelTimeFor": "all",
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _coord(point: GeoPoint) -> str:
    return f"{point.lat},{point.lng}"


@dataclass(frozen=True)
class RouteMeasurement:
    traffic_min: int
    normal_min: int
    distance_km: float


def parse_route_summary(data: dict) -> RouteMeasurement:
    """Turn a calculateRoute payload into a measurement.

    The baseline prefers TomTom's historic travel time, then the static
    no-traffic time, and finally the live time itself (zero delay).
    """
    routes = data.get("routes") if isinstance(data, dict) else None
    if not routes or not isinstance(routes, list):
        detail = data.get("detailedError") if isinstance(data, dict) else None
        message = detail.get("message") if isinstance(detail, dict) else None
        raise UpstreamError(message or "No route")

    summary = routes[0].get("summary") if isinstance(routes[0], dict) else None
    if not isinstance(summary, dict):
        raise UpstreamError("Route has no summary")

    try:
        traffic_s = float(summary["travelTimeInSeconds"])
        baseline_s = summary.get("historicTrafficTravelTimeInSeconds")
        if baseline_s is None:
            baseline_s = summary.get("noTrafficTravelTimeInSeconds")
        if baseline_s is None:
            baseline_s = traffic_s
        baseline_s = float(baseline_s)
        length_m = float(summary.get("lengthInMeters", 0))
        for value in (traffic_s, baseline_s, length_m):
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"out of range: {value}")
        return RouteMeasurement(
            traffic_min=round_half_up(traffic_s / 60),
            normal_min=round_half_up(baseline_s / 60),
            distance_km=round(length_m / 1000, 1),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamError(f"Malformed route summary: {e!r}") from e


def parse_flow_segment(data: dict) -> SpeedSample | None:
    """Extract current and free-flow speed, or None if TomTom has no segment."""
    flow = data.get("flowSegmentData") if isinstance(data, dict) else None
    if not flow:
        return None
    current = float(flow["currentSpeed"])
    free_flow = float(flow["freeFlowSpeed"])
    if free_flow <= 0:
        return None
    return SpeedSample(
        current_kmh=round_half_up(current),
        free_flow_kmh=round_half_up(free_flow),
        percent_of_free_flow=round_half_up(current / free_flow * 100),
    )


class TomTomClient:
    """Measures live and free-flow travel times for one origin/destination pair.

    Makes at most one request per call. Retrying is left to the next poll cycle.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.tomtom_key
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.tomtom_base_url,
            timeout=timeout or settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict) -> dict:
        resp = await self._client.get(path, params={"key": self._api_key, **params})
        # TomTom reports "no route" as a 4xx with a detailedError body
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            detail = body.get("detailedError") if isinstance(body, dict) else None
            if isinstance(detail, dict) and detail.get("message"):
                return body
            resp.raise_for_status()
        return resp.json()

    async def measure(self, origin: GeoPoint, destination: GeoPoint) -> RouteMeasurement:
        path = ROUTING_PATH.format(origin=_coord(origin), destination=_coord(destination))
        try:
            data = await self._get_json(path, ROUTING_PARAMS)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Routing request timed out ({type(e).__name__})") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Routing request failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Routing request failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise UpstreamError("Invalid JSON from routing API") from e
        return parse_route_summary(data)

    async def fetch_speed(self, point: GeoPoint) -> Telemetry[SpeedSample]:
        """Current speed at a point. Never raises."""
        try:
            data = await self._get_json(FLOW_PATH, {"point": _coord(point), "unit": "KMPH"})
            sample = parse_flow_segment(data)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.debug("Flow segment fetch failed for %s: %s", _coord(point), e)
            return Telemetry.failed(f"{type(e).__name__}: {e}")
        if sample is None:
            return Telemetry.no_data()
        return Telemetry.ok(sample)

"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crossing_monitor.api import crossings, diagnostics, downloads, routes, ws
from crossing_monitor.config import Settings, settings
from crossing_monitor.core.broadcaster import Broadcaster
from crossing_monitor.core.classifier import SeverityThresholds
from crossing_monitor.core.poller import TrafficPoller
from crossing_monitor.core.query import TrafficQuery
from crossing_monitor.core.scheduler import create_scheduler
from crossing_monitor.core.series_store import SeriesStore
from crossing_monitor.core.tomtom_client import TomTomClient
from crossing_monitor.core.weather_client import WeatherClient
from crossing_monitor.crossings import load_crossings
from crossing_monitor.exceptions import ConfigurationError, PersistenceError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class Services:
    tomtom: TomTomClient
    weather: WeatherClient
    store: SeriesStore
    poller: TrafficPoller
    query: TrafficQuery
    broadcaster: Broadcaster

    async def close(self) -> None:
        await self.tomtom.close()
        await self.weather.close()


def build_services(config: Settings) -> Services:
    """Validate configuration and construct every service.

    Raises ConfigurationError before anything is scheduled.
    """
    if not config.tomtom_key:
        raise ConfigurationError("TOMTOM_KEY not set")
    if config.interval_min < 1:
        raise ConfigurationError("INTERVAL_MIN must be at least 1")
    if config.history_limit < 1:
        raise ConfigurationError("HISTORY_LIMIT must be at least 1")
    try:
        thresholds = SeverityThresholds(config.severity_low_max, config.severity_moderate_max)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    crossing_list = load_crossings(config.crossings_file)

    store = SeriesStore(crossing_list, log_dir=config.log_dir, history_limit=config.history_limit)
    try:
        store.ensure_logs()
    except PersistenceError as e:
        raise ConfigurationError(f"Log directory unusable: {e}") from e

    tomtom = TomTomClient(
        api_key=config.tomtom_key,
        base_url=config.tomtom_base_url,
        timeout=config.request_timeout_seconds,
    )
    weather = WeatherClient(
        lat=config.weather_lat,
        lon=config.weather_lon,
        ttl_seconds=config.weather_ttl_seconds,
        base_url=config.weather_base_url,
        timeout=config.request_timeout_seconds,
    )
    broadcaster = Broadcaster()
    poller = TrafficPoller(
        crossing_list, tomtom, store,
        weather=weather, broadcaster=broadcaster, thresholds=thresholds,
    )
    query = TrafficQuery(
        crossing_list, store,
        interval_min=config.interval_min, display_tz=config.weather_timezone,
    )
    return Services(tomtom, weather, store, poller, query, broadcaster)


def wire_routers(services: Services, config: Settings) -> None:
    crossings.query = services.query
    routes.query = services.query
    downloads.query = services.query
    downloads.download_user = config.download_user
    downloads.download_pass = config.download_pass
    diagnostics.poller = services.poller
    ws.query = services.query
    ws.broadcaster = services.broadcaster


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    services = build_services(settings)
    wire_routers(services, settings)

    for crossing in services.query.crossings:
        for route in crossing.routes:
            logger.info("Monitoring: [%s] %s", crossing.short_name or crossing.name, route.name)
    if not settings.download_pass:
        logger.warning("DOWNLOAD_PASS not set - log downloads are disabled")

    # First cycle runs immediately, then every interval_min
    scheduler = create_scheduler(services.poller, settings)
    scheduler.start()
    logger.info("Crossing Monitor started - polling TomTom every %d min", settings.interval_min)

    yield

    scheduler.shutdown(wait=False)
    await services.close()
    logger.info("Crossing Monitor shut down")


app = FastAPI(
    title="Nicosia Crossings Monitor",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(crossings.router)
app.include_router(routes.router)
app.include_router(downloads.router)
app.include_router(diagnostics.router)
app.include_router(ws.router)


@app.get("/health")
async def health():
    return {"status": "ok"}

import math
from collections.abc import Callable, Iterable
from datetime import date, datetime

from loguru import logger

from app.core.constants import LOCATION_GRID_DEGREES
from app.models.telemetry import GeoPoint, SessionContext


def snap_location(point: GeoPoint, grid: float = LOCATION_GRID_DEGREES) -> GeoPoint:
    """Round a point to the nearest grid cell (ties round up)."""
    return GeoPoint(
        lat=round(math.floor(point.lat / grid + 0.5) * grid, 6),
        lng=round(math.floor(point.lng / grid + 0.5) * grid, 6),
    )


class ContextDeriver:
    """
    Derives the SessionContext attached to every captured event.

    Callers never supply context; it comes from the capture time, an optional
    weather source and the (already snapped) event location.
    """

    def __init__(
        self,
        weather_provider: Callable[[], str | None] | None = None,
        holidays: Iterable[date] = (),
    ):
        self.weather_provider = weather_provider
        self.holidays = frozenset(holidays)

    def is_holiday(self, day: date) -> bool:
        """Weekends plus any configured holiday date."""
        return day.weekday() >= 5 or day in self.holidays

    def current_weather(self) -> str | None:
        if self.weather_provider is None:
            return None
        try:
            return self.weather_provider()
        except Exception as e:
            logger.warning(f"Weather provider failed, capturing without weather: {e}")
            return None

    def derive(self, now: datetime, location: GeoPoint | None = None) -> SessionContext:
        return SessionContext(
            hour=now.hour,
            day_of_week=now.weekday(),
            holiday=self.is_holiday(now.date()),
            weather=self.current_weather(),
            location=location,
        )

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

TRACKED_PARAMETERS: tuple[str, ...] = ("SO2", "PM10", "PM2.5", "NO2", "O3")

SOURCE_NAME = "Israel"

ATTRIBUTION: tuple[dict[str, str], ...] = (
    {
        "name": "Israel Ministry of Environmental Protection",
        "url": "http://svivaaqm.net/",
    },
)

# Hours as a number, or the raw leading token when it could not be normalized.
SamplingInterval = Union[float, int, str, None]


class _PendingInterval:
    """Marker for an averaging period the merge step has not filled yet."""

    def __repr__(self) -> str:
        return "PENDING_INTERVAL"


PENDING_INTERVAL = _PendingInterval()


@dataclass(frozen=True)
class StationRef:
    """One station link as discovered on a region page.

    ``position`` is the link's index in discovery order; it keeps duplicate
    links distinct and orders the region's output.
    """

    position: int
    data_url: str
    interval_url: str
    station_id: str | None = None

    @property
    def label(self) -> str:
        return self.station_id or self.data_url


@dataclass(frozen=True)
class Coordinates:
    longitude: float | str | None = None
    latitude: float | str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass
class Measurement:
    parameter: str
    value: str
    unit: str
    date_utc: str
    date_local: str
    coordinates: Coordinates
    location: str = ""
    averaging_period: Any = PENDING_INTERVAL

    @property
    def is_pending(self) -> bool:
        return self.averaging_period is PENDING_INTERVAL

    def resolve_averaging_period(self, value: SamplingInterval) -> None:
        if not self.is_pending:
            raise ValueError(
                f"averaging period already set for {self.parameter} at {self.date_utc}"
            )
        self.averaging_period = value

    def to_dict(self) -> dict[str, Any]:
        if self.is_pending:
            raise ValueError(
                f"measurement {self.parameter} at {self.date_utc} has no averaging period"
            )
        return {
            "parameter": self.parameter,
            "value": self.value,
            "unit": self.unit,
            "date": {"utc": self.date_utc, "local": self.date_local},
            "coordinates": self.coordinates.to_dict(),
            "location": self.location,
            "sourceName": SOURCE_NAME,
            "averagingPeriod": {"unit": "hours", "value": self.averaging_period},
            "attribution": [dict(a) for a in ATTRIBUTION],
        }


@dataclass
class RegionResult:
    region_id: int
    url: str
    display_name: str
    stations: list[StationRef] = field(default_factory=list)
    measurements: list[Measurement] = field(default_factory=list)


@dataclass
class AggregateDocument:
    measurements: list[Measurement] = field(default_factory=list)
    name: str = SOURCE_NAME

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "measurements": [m.to_dict() for m in self.measurements],
        }

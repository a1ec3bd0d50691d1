"""Parsing contracts for the three svivaaqm page kinds.

Region pages carry a ``#lblCaption`` caption and the station links. Station
data pages carry the ``#C1WebGrid1`` grid (header row, units row, values
row) and a ``#stationInfoDiv`` table whose 7th and 8th rows hold longitude
and latitude. Interval pages carry a ``#ddlTimeBase`` dropdown whose first
option describes the sampling interval ("30 Minutes", "1 Hour").

Everything here is lenient: a missing element degrades to an empty or
``None`` result and a warning, never an exception to the pipeline.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qs, urljoin, urlparse

from crawlers.base import clean_text
from crawlers.israel.config import IsraelConfig
from crawlers.israel.errors import ParseFailure
from crawlers.israel.models import (
    TRACKED_PARAMETERS,
    Coordinates,
    Measurement,
    SamplingInterval,
    StationRef,
)
from utils.html_links import extract_links, filter_links
from utils.html_scoped import (
    element_text,
    first_option_text,
    marked_row_values,
    table_rows,
)
from utils.time import local_iso, parse_local, utc_iso

logger = logging.getLogger(__name__)

_CAPTION_ID = "lblCaption"
_CAPTION_SEPARATOR = "- "
_GRID_ID = "C1WebGrid1"
_STATION_INFO_ID = "stationInfoDiv"
_LONGITUDE_ROW = 6
_LATITUDE_ROW = 7
_TIME_BASE_ID = "ddlTimeBase"

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$", re.ASCII)

# The site labels nitrogen dioxide "No2".
_PARAMETER_ALIASES = {"No2": "NO2"}


def fix_directional_text(text: str) -> str:
    """Undo the upstream right-to-left capture of Hebrew captions.

    The region caption arrives with its characters in reverse display order,
    so the whole string is reversed back. Only the caption goes through this.
    """
    return text[::-1]


def int_prefix(value: str | None) -> int | None:
    """Leading integer of ``value``, ignoring any trailing text.

    "12" and "12.7mg" both give 12; "", "N/A" and ".5" give None.
    """
    m = _INT_PREFIX_RE.match(value or "")
    if not m:
        return None
    return int(m.group(1))


def canonical_parameter(header: str | None) -> str | None:
    name = clean_text(header)
    if name in TRACKED_PARAMETERS:
        return name
    return _PARAMETER_ALIASES.get(name)


def _number_or_raw(value: str | None) -> float | str | None:
    v = clean_text(value)
    if not v:
        return None
    if _NUMBER_RE.match(v):
        return float(v)
    return v


def _station_id(href: str) -> str | None:
    query = parse_qs(urlparse(href).query)
    for key, values in query.items():
        if key.lower() == "st_id" and values:
            return values[0].strip() or None
    return None


def parse_region_page(body: str, config: IsraelConfig) -> tuple[str, list[StationRef]]:
    """Return the region display name and its station links in page order."""
    caption = element_text(body, element_id=_CAPTION_ID)
    if caption is None:
        logger.warning(f"[{config.name}] Region page has no #{_CAPTION_ID} caption")
        caption = ""

    parts = caption.split(_CAPTION_SEPARATOR)
    raw_name = parts[1].strip() if len(parts) > 1 else ""
    display_name = fix_directional_text(raw_name)

    pattern = re.compile(config.station_link_pattern)
    links = filter_links(extract_links(body), href_pattern=pattern)

    stations: list[StationRef] = []
    for link in links:
        interval_href = pattern.sub(config.interval_path_segment, link.href, count=1)
        try:
            data_url = urljoin(config.site_root, link.href)
            interval_url = urljoin(config.site_root, interval_href)
            station_id = _station_id(link.href)
        except ValueError as exc:
            logger.warning(f"[{config.name}] Skipping station link {link.href!r}: {exc}")
            continue
        stations.append(
            StationRef(
                position=len(stations),
                data_url=data_url,
                interval_url=interval_url,
                station_id=station_id,
            )
        )
    return display_name, stations


def parse_station_page(body: str) -> tuple[list[list[str]], Coordinates]:
    rows = table_rows(body, element_id=_GRID_ID)

    values = marked_row_values(body, element_id=_STATION_INFO_ID)
    longitude = values[_LONGITUDE_ROW] if len(values) > _LONGITUDE_ROW else None
    latitude = values[_LATITUDE_ROW] if len(values) > _LATITUDE_ROW else None
    coords = Coordinates(
        longitude=_number_or_raw(longitude),
        latitude=_number_or_raw(latitude),
    )
    return rows, coords


def _cell(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def _timestamps(value: str, config: IsraelConfig) -> tuple[str, str]:
    try:
        dt = parse_local(value, config.date_format, config.timezone)
    except ValueError as exc:
        raise ParseFailure(f"Unparseable timestamp {value!r}: {exc}") from exc
    return utc_iso(dt), local_iso(dt)


def build_measurements(
    rows: list[list[str]],
    coords: Coordinates,
    config: IsraelConfig,
    *,
    location: str = "",
) -> list[Measurement]:
    """Project a station grid into measurements with a pending averaging period.

    Row 0 is the header (column 0 holds title and date), row 1 the units and
    row 2 the latest values. Fewer than three rows means nothing was recorded.
    """
    if len(rows) <= 2:
        logger.warning(
            f"[{config.name}] {location or 'station'}: grid has {len(rows)} rows, no readings"
        )
        return []

    header, units, values = rows[0], rows[1], rows[2]
    stamps: tuple[str, str] | None = None
    out: list[Measurement] = []

    for index in range(1, len(header)):
        parameter = canonical_parameter(header[index])
        if parameter is None:
            continue

        value = _cell(values, index)
        if int_prefix(value) is None:
            continue

        if stamps is None:
            try:
                stamps = _timestamps(_cell(values, 0), config)
            except ParseFailure as exc:
                logger.warning(f"[{config.name}] {location or 'station'}: {exc.message}")
                return []

        out.append(
            Measurement(
                parameter=parameter,
                value=clean_text(value),
                unit=_cell(units, index),
                date_utc=stamps[0],
                date_local=stamps[1],
                coordinates=coords,
                location=location,
            )
        )
    return out


def extract_measurements(
    body: str, config: IsraelConfig, *, location: str = ""
) -> list[Measurement]:
    rows, coords = parse_station_page(body)
    return build_measurements(rows, coords, config, location=location)


def parse_interval_text(text: str | None) -> SamplingInterval:
    """Normalize an interval descriptor to hours.

    "30 Minutes" becomes 0.5. Other units pass the leading number through
    as-is; a token that is not a number comes back as raw text.
    """
    t = clean_text(text)
    if not t:
        return None

    token = t.split(" ")[0]
    if "Minutes" in t:
        minutes = int_prefix(token)
        if minutes is None:
            return token
        return minutes / 60

    if token.isascii() and token.isdigit():
        return int(token)
    if _NUMBER_RE.match(token):
        return float(token)
    return token


def extract_interval(body: str, config: IsraelConfig) -> SamplingInterval:
    text = first_option_text(body, element_id=_TIME_BASE_ID)
    if text is None:
        logger.warning(f"[{config.name}] Interval page has no #{_TIME_BASE_ID} option")
    interval = parse_interval_text(text)
    if isinstance(interval, str):
        logger.warning(f"[{config.name}] Unparseable interval {text!r}")
    return interval

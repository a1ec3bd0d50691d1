"""Shared fixtures: synthetic svivaaqm pages and an in-memory PageFetcher."""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import Callable, Union

import pytest

from crawlers.israel.config import HttpConfig, IsraelConfig
from crawlers.israel.errors import FetchFailure
from crawlers.israel.fetcher import PageFetcher

SITE = "http://aq.test/"
REGION_TEMPLATE = SITE + "Region.aspx?G_ID=<id>"


def region_url(region_id: int) -> str:
    return REGION_TEMPLATE.replace("<id>", str(region_id))


def data_url(station_id: int | str) -> str:
    return f"{SITE}StationInfo5.aspx?ST_ID={station_id}"


def interval_url(station_id: int | str) -> str:
    return f"{SITE}StationReportFast.aspx?ST_ID={station_id}"


def region_page(caption: str | None, station_ids: list) -> str:
    caption_html = (
        f'<span id="lblCaption">{caption}</span>' if caption is not None else ""
    )
    anchors = "".join(
        f'<a href="StationInfo5.aspx?ST_ID={sid}">Station {sid}</a>' for sid in station_ids
    )
    return (
        "<html><body>"
        f"{caption_html}"
        '<a href="MenuSite.aspx">Back</a>'
        "<a>no target</a>"
        f"<div>{anchors}</div>"
        '<a href="Help.aspx">Help</a>'
        "</body></html>"
    )


def station_page(
    rows: list[list[str]],
    *,
    longitude: str = "34.7818",
    latitude: str = "32.0853",
) -> str:
    grid_rows = "".join(
        "<tr>" + "".join(f"<td>\r\n\t{cell}\r\n</td>" for cell in row) + "</tr>"
        for row in rows
    )
    info_rows = [
        f'<tr><td class="label">Field {i}</td><td><span class="value">v{i}</span></td></tr>'
        for i in range(6)
    ]
    info_rows.append(
        f'<tr><td class="label">Longitude</td><td><span class="value">{longitude}</span></td></tr>'
    )
    info_rows.append(
        f'<tr><td class="label">Latitude</td><td><span class="value">{latitude}</span></td></tr>'
    )
    return (
        "<html><body>"
        f'<div id="stationInfoDiv"><table>{"".join(info_rows)}</table></div>'
        f'<table><tr><td><table id="C1WebGrid1">{grid_rows}</table></td></tr></table>'
        "</body></html>"
    )


def interval_page(first_option: str) -> str:
    return (
        "<html><body><form>"
        '<select id="ddlTimeBase" name="ddlTimeBase">'
        f'<option value="a" selected>{first_option}'
        '<option value="b">1 Hour'
        "</select></form></body></html>"
    )


def grid(values: list[str], *, header=None, units=None) -> list[list[str]]:
    header = header or ["Date", "SO2", "PM10"]
    units = units or ["", "ppb", "ug/m3"]
    return [header, units, values]


Response = Union[str, Exception, Callable[[], str]]


class FakeFetcher(PageFetcher):
    """Serves canned bodies by URL and records what was requested."""

    def __init__(
        self,
        pages: dict[str, Response] | None = None,
        *,
        delays: dict[str, float] | None = None,
        default_delay: float = 0.0,
    ) -> None:
        super().__init__(HttpConfig())
        self.pages: dict[str, Response] = dict(pages or {})
        self.delays = dict(delays or {})
        self.default_delay = default_delay
        self.calls: list[tuple[str, str]] = []
        self.completed: list[str] = []
        self.max_in_flight: dict[str, int] = defaultdict(int)
        self._in_flight: dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    @staticmethod
    def kind(url: str) -> str:
        if "StationInfo5" in url:
            return "data"
        if "StationReportFast" in url:
            return "interval"
        return "region"

    def get(self, url: str, *, referer: str) -> str:
        kind = self.kind(url)
        with self._lock:
            self.calls.append((url, referer))
            self._in_flight[kind] += 1
            self.max_in_flight[kind] = max(self.max_in_flight[kind], self._in_flight[kind])
        try:
            delay = self.delays.get(url, self.default_delay)
            if delay:
                time.sleep(delay)
            response = self.pages.get(url)
            if response is None:
                raise FetchFailure(url, status_code=404)
            if isinstance(response, Exception):
                raise response
            if callable(response):
                return response()
            return response
        finally:
            with self._lock:
                self._in_flight[kind] -= 1
                self.completed.append(url)

    def requested(self, url: str) -> bool:
        return any(u == url for u, _ in self.calls)


def make_config(start: int = 9, end: int = 9, **overrides) -> IsraelConfig:
    values = dict(
        url=REGION_TEMPLATE,
        region_id_start=start,
        region_id_end=end,
        site_root=SITE,
        menu_referer=SITE + "MenuSite.aspx",
    )
    values.update(overrides)
    return IsraelConfig(**values)


@pytest.fixture
def config() -> IsraelConfig:
    return make_config()

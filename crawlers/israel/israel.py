from __future__ import annotations

import copy
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from functools import partial
from typing import Any, Mapping

from crawlers.base import RunContext
from crawlers.israel.batch import BatchAborted, CancelScope, run_bounded
from crawlers.israel.config import HttpConfig, IsraelConfig
from crawlers.israel.errors import (
    BatchFailure,
    CollectionFailure,
    CollectorError,
    FetchFailure,
)
from crawlers.israel.fetcher import PageFetcher
from crawlers.israel.models import (
    AggregateDocument,
    Measurement,
    RegionResult,
    SamplingInterval,
    StationRef,
)
from crawlers.israel.pages import (
    extract_interval,
    extract_measurements,
    parse_region_page,
)

logger = logging.getLogger(__name__)


def merge_station_results(
    region_name: str,
    stations: list[StationRef],
    measurements: Mapping[StationRef, list[Measurement]],
    intervals: Mapping[StationRef, SamplingInterval],
) -> list[Measurement]:
    """Fill each station's averaging periods from its own interval page.

    Joined by StationRef, never by list position. Output follows discovery
    order. Both mappings must cover exactly the region's stations.
    """
    expected = set(stations)
    if set(measurements) != expected or set(intervals) != expected:
        missing = sorted(
            ref.label
            for ref in expected
            if ref not in measurements or ref not in intervals
        )
        raise BatchFailure(
            region_name,
            "measurements and intervals",
            f"results missing for stations: {', '.join(missing) or 'unexpected extras'}",
        )

    out: list[Measurement] = []
    for ref in sorted(stations, key=lambda r: r.position):
        interval = intervals[ref]
        for m in measurements[ref]:
            m.resolve_averaging_period(interval)
            out.append(m)
    return out


class StationPipeline:
    """Fetches the measurement and interval pages of one region's stations.

    The two batches run side by side, each capped at
    ``config.station_concurrency`` requests in flight, and share one cancel
    scope. Merging starts only after both have returned.
    """

    def __init__(self, fetcher: PageFetcher, config: IsraelConfig) -> None:
        self.fetcher = fetcher
        self.config = config

    def _fetch_measurements(
        self, ref: StationRef, *, region_url: str, location: str
    ) -> list[Measurement]:
        body = self.fetcher.get(ref.data_url, referer=region_url)
        return extract_measurements(body, self.config, location=location)

    def _fetch_interval(self, ref: StationRef, *, region_url: str) -> SamplingInterval:
        body = self.fetcher.get(ref.interval_url, referer=region_url)
        return extract_interval(body, self.config)

    def run(
        self,
        region_name: str,
        region_url: str,
        stations: list[StationRef],
        *,
        location: str | None = None,
    ) -> list[Measurement]:
        if not stations:
            return []
        if location is None:
            location = region_name

        limit = self.config.station_concurrency
        scope = CancelScope()
        data_tasks = {
            ref: partial(
                self._fetch_measurements,
                ref,
                region_url=region_url,
                location=location,
            )
            for ref in stations
        }
        interval_tasks = {
            ref: partial(self._fetch_interval, ref, region_url=region_url)
            for ref in stations
        }

        results: dict[str, Any] = {}
        aborted: list[BatchAborted] = []
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="stations") as pool:
            futures = {
                "measurements": pool.submit(
                    run_bounded, data_tasks, limit=limit, label="measurements", scope=scope
                ),
                "intervals": pool.submit(
                    run_bounded, interval_tasks, limit=limit, label="intervals", scope=scope
                ),
            }
            for label, fut in futures.items():
                try:
                    results[label] = fut.result()
                except BatchAborted as exc:
                    aborted.append(exc)

        if aborted:
            primary = next((e for e in aborted if e.cause is not None), aborted[0])
            reason = str(primary.cause) if primary.cause is not None else "cancelled"
            raise BatchFailure(region_name, primary.label, reason) from primary.cause

        return merge_station_results(
            region_name, stations, results["measurements"], results["intervals"]
        )


class RegionPipeline:
    def __init__(self, fetcher: PageFetcher, config: IsraelConfig) -> None:
        self.fetcher = fetcher
        self.config = config
        self.stations = StationPipeline(fetcher, config)

    def run(self, region_id: int) -> RegionResult:
        name = self.config.name
        url = self.config.region_url(region_id)

        logger.info(f"[{name}] Fetching region {region_id}: {url}")
        try:
            body = self.fetcher.get(url, referer=self.config.menu_referer)
        except FetchFailure as exc:
            exc.region_id = region_id
            raise

        display_name, stations = parse_region_page(body, self.config)
        result = RegionResult(
            region_id=region_id,
            url=url,
            display_name=display_name,
            stations=stations,
        )
        if not stations:
            logger.info(f"[{name}] Region {region_id} ({display_name!r}) lists no stations")
            return result

        logger.info(
            f"[{name}] Region {region_id} ({display_name!r}): {len(stations)} stations"
        )
        label = display_name or f"region {region_id}"
        result.measurements = self.stations.run(
            label, url, stations, location=display_name
        )

        if any(m.is_pending for m in result.measurements):
            raise BatchFailure(label, "intervals", "unmerged averaging periods")

        logger.info(
            f"[{name}] Region {region_id}: {len(result.measurements)} measurements"
        )
        return result


def collect(config: IsraelConfig, fetcher: PageFetcher) -> AggregateDocument:
    """Run every region in parallel and concatenate their measurements by id.

    Any failed region fails the whole run with CollectionFailure.
    """
    region_ids = config.region_ids()
    pipeline = RegionPipeline(fetcher, config)
    workers = config.region_concurrency or len(region_ids)

    results: dict[int, RegionResult] = {}
    failures: dict[int, CollectorError] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="region") as pool:
        future_map = {pool.submit(pipeline.run, rid): rid for rid in region_ids}
        for fut in as_completed(future_map):
            rid = future_map[fut]
            try:
                results[rid] = fut.result()
            except CollectorError as exc:
                logger.error(f"[{config.name}] Region {rid} failed: {exc.message}")
                failures[rid] = exc
            except Exception as exc:
                logger.exception(f"[{config.name}] Region {rid} failed unexpectedly")
                failure = CollectorError(f"Unexpected error in region {rid}: {exc!r}")
                failure.__cause__ = exc
                failures[rid] = failure

    if failures:
        raise CollectionFailure(failures)

    measurements: list[Measurement] = []
    for rid in region_ids:
        measurements.extend(results[rid].measurements)

    logger.info(
        f"[{config.name}] Collected {len(measurements)} measurements "
        f"from {len(region_ids)} regions"
    )
    return AggregateDocument(measurements=measurements)


def fetch_data(
    source: Mapping[str, Any],
    settings: dict[str, Any] | None = None,
    *,
    fetcher: PageFetcher | None = None,
) -> dict[str, Any]:
    """Collect one source descriptor (``{"url": ..., "name": ...}``).

    Returns the aggregate document as a plain dict; raises CollectionFailure
    when any region fails.
    """
    settings = copy.deepcopy(settings or {})
    config = IsraelConfig.from_settings(settings)
    config = replace(
        config,
        url=str(source.get("url") or config.url),
        name=str(source.get("name") or config.name),
    )
    if fetcher is None:
        fetcher = PageFetcher(HttpConfig.from_settings(settings))
    return collect(config, fetcher).to_dict()


class Crawler:
    """svivaaqm.net air-quality collector.

    Walks region pages ``url`` (``<id>`` in ``region_id_start..region_id_end``),
    their station data pages and the matching interval pages, and returns one
    ``{"name": "Israel", "measurements": [...]}`` document.

        Config: crawlers.israel
            - url: http://www.svivaaqm.net/DynamicTable.aspx?G_ID=<id>
            - region_id_start: 9
            - region_id_end: 20
            - station_concurrency: 2

    Uses http.timeout_seconds/user_agent/max_retries as shared settings.
    """

    name = "israel"

    def __init__(self, fetcher: PageFetcher | None = None) -> None:
        self._fetcher = fetcher

    def crawl(self, ctx: RunContext) -> dict[str, Any]:
        config = IsraelConfig.from_settings(ctx.settings, self.name)
        fetcher = self._fetcher or PageFetcher(HttpConfig.from_settings(ctx.settings))
        if ctx.debug:
            logger.debug(f"[{self.name}] Config: {config}")
        return collect(config, fetcher).to_dict()

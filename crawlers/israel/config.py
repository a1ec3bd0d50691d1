from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from utils.settings import section


_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_12_5) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/58.0.3029.110 Safari/537.36"
)
_DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
_DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"

ID_PLACEHOLDER = "<id>"


@dataclass(frozen=True)
class HttpConfig:
    timeout_seconds: float = 30.0
    user_agent: str = _DEFAULT_USER_AGENT
    accept: str = _DEFAULT_ACCEPT
    content_type: str = _DEFAULT_CONTENT_TYPE
    max_retries: int = 0
    backoff_base_seconds: float = 0.5
    backoff_jitter_seconds: float = 0.25

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "HttpConfig":
        http_cfg = section(settings, "http")
        return cls(
            timeout_seconds=float(http_cfg.get("timeout_seconds", 30)),
            user_agent=str(http_cfg.get("user_agent") or _DEFAULT_USER_AGENT).strip(),
            accept=str(http_cfg.get("accept") or _DEFAULT_ACCEPT).strip(),
            content_type=str(
                http_cfg.get("content_type") or _DEFAULT_CONTENT_TYPE
            ).strip(),
            max_retries=int(http_cfg.get("max_retries", 0)),
            backoff_base_seconds=float(http_cfg.get("backoff_base_seconds", 0.5)),
            backoff_jitter_seconds=float(http_cfg.get("backoff_jitter_seconds", 0.25)),
        )


@dataclass(frozen=True)
class IsraelConfig:
    """Settings for the ``crawlers.israel`` section.

    ``url`` is the region page template; ``<id>`` is replaced by each id in
    ``region_id_start..region_id_end`` (inclusive).
    """

    url: str = "http://www.svivaaqm.net/DynamicTable.aspx?G_ID=<id>"
    name: str = "israel"
    region_id_start: int = 9
    region_id_end: int = 20
    site_root: str = "http://www.svivaaqm.net/"
    menu_referer: str = "http://www.svivaaqm.net/MenuSite.aspx"
    station_link_pattern: str = "StationInfo5"
    interval_path_segment: str = "StationReportFast"
    station_concurrency: int = 2
    region_concurrency: int | None = None
    timezone: str = "Asia/Jerusalem"
    date_format: str = "%d/%m/%Y %H:%M:%S"

    def __post_init__(self) -> None:
        if ID_PLACEHOLDER not in self.url:
            raise ValueError(f"region url template must contain {ID_PLACEHOLDER}: {self.url}")
        if self.region_id_start > self.region_id_end:
            raise ValueError(
                f"region_id_start ({self.region_id_start}) is after "
                f"region_id_end ({self.region_id_end})"
            )
        if self.station_concurrency < 1:
            raise ValueError("station_concurrency must be at least 1")
        if self.region_concurrency is not None and self.region_concurrency < 1:
            raise ValueError("region_concurrency must be at least 1 when set")
        if not self.station_link_pattern:
            raise ValueError("station_link_pattern must not be empty")

    @classmethod
    def from_settings(cls, settings: dict[str, Any], name: str = "israel") -> "IsraelConfig":
        cfg = section(settings, "crawlers", name)
        defaults = cls()

        region_concurrency = cfg.get("region_concurrency")
        return cls(
            url=str(cfg.get("url", defaults.url)).strip(),
            name=str(cfg.get("name", name)).strip() or name,
            region_id_start=int(cfg.get("region_id_start", defaults.region_id_start)),
            region_id_end=int(cfg.get("region_id_end", defaults.region_id_end)),
            site_root=str(cfg.get("site_root", defaults.site_root)).strip(),
            menu_referer=str(cfg.get("menu_referer", defaults.menu_referer)).strip(),
            station_link_pattern=str(
                cfg.get("station_link_pattern", defaults.station_link_pattern)
            ).strip(),
            interval_path_segment=str(
                cfg.get("interval_path_segment", defaults.interval_path_segment)
            ).strip(),
            station_concurrency=int(
                cfg.get("station_concurrency", defaults.station_concurrency)
            ),
            region_concurrency=(
                int(region_concurrency) if region_concurrency is not None else None
            ),
            timezone=str(cfg.get("timezone", defaults.timezone)).strip(),
            date_format=str(cfg.get("date_format", defaults.date_format)),
        )

    def region_ids(self) -> list[int]:
        return list(range(self.region_id_start, self.region_id_end + 1))

    def region_url(self, region_id: int) -> str:
        return self.url.replace(ID_PLACEHOLDER, str(region_id))

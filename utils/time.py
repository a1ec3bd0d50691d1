from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_date_yyyymmdd(dt: datetime | None = None) -> str:
    if dt is None:
        dt = utc_now()
    return dt.strftime("%Y-%m-%d")


def parse_local(value: str, fmt: str, tz_name: str) -> datetime:
    """Parse a naive wall-clock string and attach ``tz_name``.

    Raises ValueError when ``value`` does not match ``fmt``.
    """
    naive = datetime.strptime((value or "").strip(), fmt)
    return naive.replace(tzinfo=ZoneInfo(tz_name))


def utc_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def local_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="seconds")

from __future__ import annotations

from typing import Any


class CollectorError(Exception):
    """Base class for every failure the Israel collector reports upward."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


class FetchFailure(CollectorError):
    """Transport error or non-200 response for one page."""

    def __init__(
        self,
        url: str,
        *,
        status_code: int | None = None,
        region_id: int | None = None,
        reason: str = "",
    ) -> None:
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        if reason:
            detail += f": {reason}"
        super().__init__(f"Failed to access: {url}{detail}")
        self.url = url
        self.status_code = status_code
        self.region_id = region_id


class ParseFailure(CollectorError):
    """An expected element or value is structurally absent from a page."""


class BatchFailure(CollectorError):
    """A station batch failed, or its results could not be merged."""

    def __init__(self, region_name: str, label: str, reason: str = "") -> None:
        msg = f"Failed to gather {label} for: {region_name}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.region_name = region_name
        self.label = label


class CollectionFailure(CollectorError):
    """At least one region pipeline failed; the run has no partial result."""

    def __init__(self, failures: dict[int, CollectorError]) -> None:
        ordered = sorted(failures.items())
        parts = [f"region {rid}: {err.message}" for rid, err in ordered]
        super().__init__(
            "There was an error parsing data from the source; " + "; ".join(parts)
        )
        self.failures = dict(ordered)

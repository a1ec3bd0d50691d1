from __future__ import annotations

from dataclasses import dataclass
import random
import time
from typing import Any

import requests


@dataclass(frozen=True)
class RunContext:
    run_date_utc: str
    started_at_utc: str
    settings: dict[str, Any]
    debug: bool = False


def clean_text(value: str | None) -> str:
    return " ".join((value or "").strip().split())


def sleep_seconds(seconds: float) -> None:
    if seconds <= 0:
        return
    time.sleep(seconds)


def compute_backoff_seconds(
    attempt: int,
    *,
    base: float,
    jitter: float,
    max_backoff_seconds: float = 30.0,
) -> float:
    exp = base * (2**attempt)
    exp = min(exp, max_backoff_seconds)
    if jitter > 0:
        exp += random.uniform(0.0, jitter)
    return exp


def get_with_retries(
    session,
    url,
    *,
    timeout_seconds,
    max_retries,
    backoff_base_seconds,
    backoff_jitter_seconds,
    headers=None,
    retry_statuses=(429, 500, 502, 503, 504),
    parse_retry_after_seconds=True,
) -> requests.Response:
    """GET ``url``, retrying transport errors and retryable statuses.

    The final response is returned whatever its status once retries are
    exhausted or the status is not retryable; callers decide what a
    non-200 means for them.
    """
    last_err: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            resp = session.get(url, headers=headers, timeout=timeout_seconds)
            if resp.status_code in retry_statuses and attempt < max_retries:
                if parse_retry_after_seconds:
                    retry_after = resp.headers.get("Retry-After")
                    if retry_after:
                        try:
                            sleep_seconds(float(retry_after))
                        except ValueError:
                            pass

                sleep_seconds(
                    compute_backoff_seconds(
                        attempt,
                        base=backoff_base_seconds,
                        jitter=backoff_jitter_seconds,
                    )
                )
                continue

            return resp
        except requests.RequestException as e:
            last_err = e
            if attempt >= max_retries:
                raise

            sleep_seconds(
                compute_backoff_seconds(
                    attempt,
                    base=backoff_base_seconds,
                    jitter=backoff_jitter_seconds,
                )
            )

    assert last_err is not None
    raise last_err

from __future__ import annotations

import argparse
import importlib
import logging
import os
from datetime import timezone
from pathlib import Path
from typing import Any

from crawlers.base import RunContext
from crawlers.israel.errors import CollectorError
from utils.jsonio import file_entry, write_json
from utils.settings import load_settings
from utils.time import utc_date_yyyymmdd, utc_now

logger = logging.getLogger(__name__)


_CRAWLER_MODULE_ALIASES: dict[str, str] = {
    "israel": "israel.israel",
    "svivaaqm": "israel.israel",
}


def _load_crawler_module(name: str):
    raw = name.strip()
    if not raw:
        raise ValueError("crawler name is empty")

    normalized = raw.replace("/", ".")
    if normalized.startswith("crawlers."):
        return importlib.import_module(normalized)

    normalized = _CRAWLER_MODULE_ALIASES.get(normalized, normalized)
    return importlib.import_module(f"crawlers.{normalized}")


def _apply_overrides(
    settings: dict[str, Any], crawler_name: str, args: argparse.Namespace
) -> None:
    crawlers_cfg = settings.get("crawlers") or {}
    settings["crawlers"] = crawlers_cfg
    cfg = crawlers_cfg.get(crawler_name) or {}
    crawlers_cfg[crawler_name] = cfg
    if args.start_id is not None:
        cfg["region_id_start"] = args.start_id
    if args.end_id is not None:
        cfg["region_id_end"] = args.end_id
    if args.url.strip():
        cfg["url"] = args.url.strip()


def _configure_logging(debug: bool) -> None:
    level_name = "DEBUG" if debug else os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        description="Collect svivaaqm.net air-quality measurements and write them as JSON"
    )
    ap.add_argument(
        "--crawler",
        default="israel",
        help="Crawler module path relative to crawlers (e.g. israel.israel).",
    )
    ap.add_argument("--settings", default="config/settings.yaml")
    ap.add_argument("--out", default="data", help="Output root")
    ap.add_argument("--debug", action="store_true")
    ap.add_argument(
        "--run-date", default="", help="UTC date YYYY-MM-DD (defaults to today)"
    )
    ap.add_argument("--start-id", type=int, default=None, help="First region id")
    ap.add_argument("--end-id", type=int, default=None, help="Last region id (inclusive)")
    ap.add_argument("--url", default="", help="Region URL template containing <id>")

    args = ap.parse_args(argv)
    _configure_logging(args.debug)

    mod = _load_crawler_module(args.crawler)
    crawler = mod.Crawler()

    settings = load_settings(args.settings)
    _apply_overrides(settings, crawler.name, args)

    now = utc_now()
    run_date = args.run_date.strip() or utc_date_yyyymmdd(now)

    ctx = RunContext(
        run_date_utc=run_date,
        started_at_utc=now.astimezone(timezone.utc).isoformat(),
        settings=settings,
        debug=bool(args.debug),
    )

    try:
        document = crawler.crawl(ctx)
    except CollectorError as exc:
        logger.error(f"[{crawler.name}] {exc.message}")
        return 1

    latest_dir = Path(args.out) / "latest"
    doc_path = latest_dir / f"{crawler.name}.json"
    write_json(doc_path, document)
    rows = len(document.get("measurements", []))

    summary_path = latest_dir / "summary.json"
    write_json(
        summary_path,
        {
            "run_date_utc": run_date,
            "started_at_utc": ctx.started_at_utc,
            "crawler": crawler.name,
            "rows": rows,
        },
    )

    manifest = {
        "run_date_utc": run_date,
        "generated_at_utc": utc_now().isoformat(),
        "schema_version": 1,
        "outputs": [
            file_entry(doc_path, rows=rows),
            file_entry(summary_path),
        ],
    }
    write_json(latest_dir / "manifest.json", manifest)

    print(f"Wrote {rows} measurements to {doc_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

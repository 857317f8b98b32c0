#!/usr/bin/env python3
"""
Write a CSV of every customer matching a filter to the export directory.

Usage:

    PYTHONPATH=src python3 -m scripts.export_customers --segment Champions
    PYTHONPATH=src python3 -m scripts.export_customers --api-base-url http://localhost:3000
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from app.client import DashboardApiClient
from app.di import build_services
from app.logging_config import setup_logging
from app.settings import get_settings
from core.errors import DashboardError, EmptyResultError
from core.filters import normalize_filter
from core.services.export_service import ExportService, export_filename

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    ap = argparse.ArgumentParser()
    ap.add_argument("--segment", default="", help="Only customers in this segment")
    ap.add_argument("--customer-id", default="", help="Only this customer id")
    ap.add_argument("--out-dir", type=Path, default=settings.export_dir, help="Directory to write the CSV")
    ap.add_argument("--api-base-url", default=None, help="Export through a running API instead of the database")
    args = ap.parse_args(argv)

    setup_logging(settings.log_level)
    filter = normalize_filter(args.segment, args.customer_id)

    if args.api_base_url:
        exporter = ExportService(
            DashboardApiClient(args.api_base_url), export_limit=settings.export_limit, bom=settings.export_bom
        )
    else:
        exporter = build_services(settings).exports

    try:
        result = exporter.export_all(filter)
    except EmptyResultError:
        logger.warning("No data to export")
        return 1
    except DashboardError as exc:
        logger.error("Failed to export data: %s", exc)
        return 2

    args.out_dir.mkdir(parents=True, exist_ok=True)
    out_path = args.out_dir / export_filename()
    out_path.write_bytes(result.data)
    logger.info("Exported %d customers to %s", result.rows, out_path)
    if result.truncated:
        logger.warning("Export was capped; narrow the filter to get every row")
    return 0


if __name__ == "__main__":
    sys.exit(main())

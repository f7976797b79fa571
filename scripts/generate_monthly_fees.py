"""Generate monthly fee records for all active students.

Usage: python scripts/generate_monthly_fees.py [--month M] [--year Y]
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.school_management.school_management.container import build_container
from src.school_management.school_management.main import configure_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--month", type=int, default=None)
    parser.add_argument("--year", type=int, default=None)
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", ""))
    container = build_container(db_config=dict(settings.DB_CONFIG), fee_autogenerate=False)

    print("Starting monthly fee generation...")
    report = container.fee_generation_service.generate(month=args.month, year=args.year)
    print(f"Generating fees for: {report.year}-{report.month}")
    for warning in report.warnings:
        print(f"WARNING: {warning}")
    if not report.ran:
        return 1

    print(f"Found {report.students} active students")
    print("Fee generation completed!")
    print(f"Generated: {report.generated}")
    print(f"Skipped (already exists): {report.skipped}")
    if report.errors:
        print(f"Errors: {report.errors}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Mark pending fees past their due date as overdue and apply late fees."""

from __future__ import annotations

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


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", ""))
    container = build_container(db_config=dict(settings.DB_CONFIG), fee_autogenerate=False)

    print("Checking for overdue fees...")
    report = container.overdue_service.update_overdue()
    print(f"Updated {report.updated} fees to overdue status")
    if report.errors:
        print(f"Errors: {report.errors}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

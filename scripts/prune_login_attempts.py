"""Delete login attempts older than the retention period.

Meant to run from cron, e.g. hourly.
"""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.smart_attendance.smart_attendance.common.logger import configure_logging
from src.smart_attendance.smart_attendance.container import build_container


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    options = {name: getattr(settings, name) for name in dir(settings) if name.isupper()}
    configure_logging(level=options.get("LOG_LEVEL", "INFO"), log_dir=options.get("LOG_DIR"))

    container = build_container(db_config=dict(settings.DB_CONFIG), options=options)
    removed = container.rate_limiter.prune()
    print(f"OK: Removed {removed} login attempts")


if __name__ == "__main__":
    main()

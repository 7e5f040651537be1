from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.smart_attendance.smart_attendance.database.bootstrap import ensure_demo_student


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or refresh the demo student account.")
    parser.add_argument("--roll-number", default="CS-2024-001")
    parser.add_argument("--name", default="Asha Verma")
    parser.add_argument("--email", default="asha.verma@example.com")
    parser.add_argument("--password", default="Student123")
    args = parser.parse_args()

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_student(
        db_config,
        roll_number=args.roll_number,
        name=args.name,
        email=args.email,
        password=args.password,
    )

    print(
        f"OK: Demo student {args.roll_number} ready -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()

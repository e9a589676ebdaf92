from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from app.infrastructure.config import DatabaseConfig, get_settings, load_settings_from_file
from app.infrastructure.db import make_engine_and_session
from app.utils.seed import (
    initialise_database,
    seed_questionnaire_from_workbook,
    seed_reference_sections,
)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Create the schema, seed scored sections and load a questionnaire workbook"
    )

    parser.add_argument(
        "--backend", choices=["sqlite", "mysql"], default=os.environ.get("DB_BACKEND", "sqlite")
    )
    parser.add_argument("--sqlite-path", default=os.environ.get("DB_SQLITE_PATH", "./assessment.db"))
    parser.add_argument("--mysql-host", default=os.environ.get("DB_MYSQL_HOST", "localhost"))
    parser.add_argument("--mysql-port", type=int, default=int(os.environ.get("DB_MYSQL_PORT") or 3306))
    parser.add_argument("--mysql-user", default=os.environ.get("DB_MYSQL_USER", "root"))
    parser.add_argument("--mysql-password", default=os.environ.get("DB_MYSQL_PASSWORD", ""))
    parser.add_argument("--mysql-database", default=os.environ.get("DB_MYSQL_DATABASE", "assessment"))
    parser.add_argument(
        "--excel-path",
        default=None,
        help="Workbook with a 'Questions' sheet and an optional 'Rules' sheet",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON settings file, e.g. {\"scoring\": {\"dimensions\": [...]}}",
    )
    args = parser.parse_args()

    if args.config:
        try:
            load_settings_from_file(args.config)
        except (FileNotFoundError, ValueError) as e:
            print(f"ERROR: {e}", file=sys.stderr)
            sys.exit(1)
    info = get_settings().get_environment_info()
    print(
        f"Environment: {info['environment']}, scoring dimensions: "
        f"{', '.join(info['scoring']['dimensions'])} ({info['scoring']['total_max_points']} points)"
    )

    cfg = DatabaseConfig(
        backend=args.backend,
        sqlite_path=args.sqlite_path,
        mysql_host=args.mysql_host,
        mysql_port=args.mysql_port,
        mysql_user=args.mysql_user,
        mysql_password=args.mysql_password,
        mysql_database=args.mysql_database,
    )
    engine, SessionLocal = make_engine_and_session(cfg.get_connection_url())
    initialise_database(engine)

    excel_path = Path(args.excel_path) if args.excel_path else None
    if excel_path is not None and not excel_path.exists():
        print(f"ERROR: Excel file not found at {excel_path}", file=sys.stderr)
        sys.exit(1)

    with SessionLocal() as session:
        created = seed_reference_sections(session)
        print(f"Sections created: {len(created)}")
        if excel_path is not None:
            questions, rules = seed_questionnaire_from_workbook(session, excel_path)
            print(f"Questions synced: {questions}, rules created: {rules}")
        session.commit()
    print("Seed completed.")


if __name__ == "__main__":
    main()

from dotenv import load_dotenv
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

load_dotenv(".env")

import argparse

from eventcredits.core.database import Base, SessionLocal, engine
from eventcredits.core.logging_config import configure_logging
from eventcredits.core.settings import settings
from eventcredits.services.importer import decode_csv_bytes, import_credits, import_users, reset_store
from eventcredits.services.stats import dashboard_stats


def _read(path: str | None) -> str | None:
    if not path:
        return None
    p = Path(path)
    if not p.exists():
        print(f"File not found: {p}")
        return None
    return decode_csv_bytes(p.read_bytes())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load credits and eligible users from CSV files.")
    parser.add_argument("--credits", help="CSV with a link (or url) column")
    parser.add_argument("--users", help="CSV with email, name, company, role, approval_status columns")
    parser.add_argument("--reset", action="store_true", help="delete all credits and users first")
    args = parser.parse_args(argv)

    configure_logging()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.reset:
            reset_store(db)
            print("Existing credits and users deleted")

        credits_text = _read(args.credits)
        if credits_text is not None:
            report = import_credits(db, credits_text, link_base=settings.credit_link_base)
            print(f"Credits: {report.created} created, {report.skipped} skipped")
            for err in report.errors:
                print(f"  {err}")

        users_text = _read(args.users)
        if users_text is not None:
            report = import_users(db, users_text)
            print(f"Eligible users: {report.created} created, {report.skipped} skipped")
            for err in report.errors:
                print(f"  {err}")

        stats = dashboard_stats(db)
    finally:
        db.close()

    print("=" * 40)
    for key, value in stats.items():
        print(f"{key:<20} {value}")
    print("=" * 40)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

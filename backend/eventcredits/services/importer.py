from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventcredits.models.credit import Credit
from eventcredits.models.eligible_user import ApprovalStatus, EligibleUser, normalize_email, parse_approval_status


logger = logging.getLogger(__name__)

CODE_IN_LINK = re.compile(r"code=([A-Za-z0-9]+)")
NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
USED_STATUSES = {"taken", "used", "claimed", "assigned"}
TRUE_VALUES = {"1", "true", "yes", "y", "on"}


@dataclass
class ImportReport:
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"created": self.created, "skipped": self.skipped, "errors": list(self.errors)}


def decode_csv_bytes(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def read_rows(text: str) -> list[dict[str, str]]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        return []
    headers = [str(h or "").strip().lower() for h in reader.fieldnames]
    reader.fieldnames = headers
    rows: list[dict[str, str]] = []
    for row in reader:
        cleaned = {k: str(v or "").strip() for k, v in row.items() if k}
        if any(cleaned.values()):
            rows.append(cleaned)
    return rows


def extract_code(link: str) -> str:
    match = CODE_IN_LINK.search(link)
    if match:
        return match.group(1)
    return NON_ALNUM.sub("", link)[:12]


def _insert(db: Session, row: object) -> bool:
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        return False
    return True


def import_credits(db: Session, text: str, *, link_base: str) -> ImportReport:
    """Load redemption links into the credit pool.

    Rows without a link are malformed, rows whose status says the link was
    already handed out are skipped (they have no holder to point at), and
    duplicate codes are skipped.
    """
    report = ImportReport()
    seen: set[str] = set()
    for line_no, row in enumerate(read_rows(text), start=2):
        link = row.get("link") or row.get("url") or ""
        if not link:
            report.skipped += 1
            report.errors.append(f"line {line_no}: missing link")
            continue
        if (row.get("status") or "").lower() in USED_STATUSES:
            report.skipped += 1
            continue

        code = row.get("code") or extract_code(link)
        if not code:
            report.skipped += 1
            report.errors.append(f"line {line_no}: cannot derive a code")
            continue
        if not link.lower().startswith("http"):
            link = f"{link_base.rstrip('/')}?code={code}"

        if code in seen or db.query(Credit.id).filter(Credit.code == code).first() is not None:
            report.skipped += 1
            logger.info("import.credits.duplicate code=%s", code)
            continue
        seen.add(code)

        test = (row.get("test") or row.get("is_test") or "").lower() in TRUE_VALUES
        if _insert(db, Credit(code=code, link=link, test=test)):
            report.created += 1
        else:
            report.skipped += 1
            logger.info("import.credits.duplicate code=%s", code)

    db.commit()
    logger.info("import.credits.done created=%s skipped=%s", report.created, report.skipped)
    return report


def import_users(db: Session, text: str) -> ImportReport:
    report = ImportReport()
    seen: set[str] = set()
    for line_no, row in enumerate(read_rows(text), start=2):
        email = normalize_email(row.get("email"))
        if not email or "@" not in email:
            report.skipped += 1
            report.errors.append(f"line {line_no}: invalid email")
            continue

        raw_status = row.get("approval_status") or row.get("status") or ApprovalStatus.APPROVED.value
        status = parse_approval_status(raw_status)
        if status is None:
            report.skipped += 1
            report.errors.append(f"line {line_no}: unknown approval status {raw_status!r}")
            continue

        if email in seen or db.query(EligibleUser.id).filter(EligibleUser.email == email).first() is not None:
            report.skipped += 1
            logger.info("import.users.duplicate email=%s", email)
            continue
        seen.add(email)

        user = EligibleUser(
            email=email,
            name=row.get("name") or "Unknown",
            company=row.get("company") or None,
            role=row.get("role") or None,
            approval_status=status.value,
            claimed=False,
        )
        if _insert(db, user):
            report.created += 1
        else:
            report.skipped += 1
            logger.info("import.users.duplicate email=%s", email)

    db.commit()
    logger.info("import.users.done created=%s skipped=%s", report.created, report.skipped)
    return report


def reset_store(db: Session) -> None:
    db.query(EligibleUser).delete()
    db.query(Credit).delete()
    db.commit()
    logger.info("import.reset.done")

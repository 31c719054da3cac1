from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from eventcredits.api.deps import get_notifier, get_settings
from eventcredits.core.auth import require_admin_session
from eventcredits.core.database import get_db
from eventcredits.core.settings import Settings
from eventcredits.schemas.admin import AdminActionRequest
from eventcredits.services.admin_actions import AdminActionError, run_admin_action
from eventcredits.services.importer import decode_csv_bytes, import_credits, import_users
from eventcredits.services.notifications import CreditNotifier
from eventcredits.services.stats import dashboard_snapshot


logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_session)])


@router.post("/admin/actions")
async def admin_actions(
    body: AdminActionRequest,
    db: Session = Depends(get_db),
    notifier: CreditNotifier = Depends(get_notifier),
    cfg: Settings = Depends(get_settings),
):
    try:
        return run_admin_action(db, body.action, body.data, notifier=notifier, settings=cfg)
    except AdminActionError as e:
        logger.info("admin.action.rejected action=%s status=%s error=%s", body.action, e.status_code, e.message)
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception:
        logger.exception("admin.action.error action=%s", body.action)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


@router.get("/admin/dashboard")
async def admin_dashboard(db: Session = Depends(get_db)) -> dict:
    return dashboard_snapshot(db)


async def _read_csv(file: UploadFile) -> str:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="The CSV file is empty")
    return decode_csv_bytes(content)


@router.post("/admin/import/credits")
async def admin_import_credits(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
) -> dict:
    text = await _read_csv(file)
    report = import_credits(db, text, link_base=cfg.credit_link_base)
    logger.info("admin.import.credits filename=%s created=%s skipped=%s", file.filename, report.created, report.skipped)
    return {"success": True, **report.to_dict()}


@router.post("/admin/import/users")
async def admin_import_users(file: UploadFile = File(...), db: Session = Depends(get_db)) -> dict:
    text = await _read_csv(file)
    report = import_users(db, text)
    logger.info("admin.import.users filename=%s created=%s skipped=%s", file.filename, report.created, report.skipped)
    return {"success": True, **report.to_dict()}

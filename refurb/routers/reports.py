# refurb/routers/reports.py
import io
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from .. import models, reports
from ..deps import get_db, get_current_user
from ..errors import NotFound, ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _rows(db: Session, kind: str, start: Optional[date], end: Optional[date]) -> list[dict]:
    if kind not in reports.BUILDERS:
        raise NotFound(f"Unknown report: {kind}")
    if start and end and start > end:
        raise ValidationError("Start date must be before end date")
    return reports.BUILDERS[kind](db, start, end)


@router.get("/reports/{kind}")
def report_rows(
    kind: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    rows = _rows(db, kind, start, end)
    return {"kind": kind, "title": reports.REPORTS[kind]["title"], "rows": rows}


@router.get("/reports/{kind}/export")
def export_report(
    kind: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rows = _rows(db, kind, start, end)
    data = reports.to_xlsx(rows, reports.REPORTS[kind]["sheet"])
    filename = reports.export_filename(kind, start, end)
    logger.info("%s exported %s (%d rows)", user.email, filename, len(rows))
    return StreamingResponse(
        io.BytesIO(data),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

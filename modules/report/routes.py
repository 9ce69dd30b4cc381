"""
Report Module - API Routes
===========================
  GET /api/reports/stats          - Bill statistics for a date range
  GET /api/reports/daily          - Daily sales report (JSON)
  GET /api/reports/daily.xlsx     - Daily sales report (Excel)
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import get_current_user
from modules.report.export import export_daily_sales_xlsx
from modules.report.service import report_service
from modules.user.models import User


router = APIRouter(prefix="/api/reports", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/stats")
async def bill_stats(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "stats": report_service.bill_stats(db, user, date_from, date_to)}


@router.get("/daily")
async def daily_sales(
    day: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "report": report_service.daily_sales_report(db, user, day)}


@router.get("/daily.xlsx")
async def daily_sales_xlsx(
    day: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    report = report_service.daily_sales_report(db, user, day)
    return Response(
        content=export_daily_sales_xlsx(report),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="daily-sales-{report["date"]}.xlsx"'},
    )

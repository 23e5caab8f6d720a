"""
Admin-only booking views and reports.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.security import require_admin
from app.db.session import Database, get_db
from app.schemas.booking import BookingResponse, ReportResponse
from app.services.booking_service import get_all_bookings
from app.services.report_service import compute_report

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/bookings", response_model=list[BookingResponse])
async def list_all_bookings(db: Database = Depends(get_db)):
    return await get_all_bookings(db)


@router.get("/reports", response_model=ReportResponse)
async def reports(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Database = Depends(get_db),
):
    """
    Total bookings, seats and revenue, optionally for bookings created in
    [start_date, end_date]. The bounds go together: giving only one of them,
    or a start after the end, is rejected with 400.
    """
    return await compute_report(db, start_date, end_date)

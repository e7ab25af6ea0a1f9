from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from schemas.data import DashboardStatsOut
from services.reports import dashboard_stats


router = APIRouter()


@router.get("/stats", response_model=DashboardStatsOut)
def get_dashboard_stats(db: Session = Depends(get_db)) -> DashboardStatsOut:
    return dashboard_stats(db)

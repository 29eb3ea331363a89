"""
Daily report and end-of-day endpoints
"""

from fastapi import APIRouter, Depends
from datetime import date

from shiftbook.core.dependencies import get_services
from shiftbook.schemas.report import DailyReport
from shiftbook.services import Services
from shiftbook.api.schemas import (
    AggregateRequest, FinalizeCheckRead, FinalizeRead, FinalizeRequest
)

router = APIRouter()


@router.get("/daily", response_model=DailyReport)
def generate_daily_report(
    branch_id: str,
    date: date,
    services: Services = Depends(get_services),
):
    """Z report for one branch and date"""
    return services.reports.generate_daily_report(branch_id, date)


@router.post("/aggregate", response_model=DailyReport)
def aggregate_reports(request: AggregateRequest, services: Services = Depends(get_services)):
    """Merge sibling terminal reports into one"""
    return services.reports.aggregate_reports(request.main, request.children)


@router.get("/finalize/check", response_model=FinalizeCheckRead)
def can_finalize(date: date, services: Services = Depends(get_services)):
    check = services.end_of_day.can_finalize(date)
    return FinalizeCheckRead(ok=check.ok, reason=check.reason)


@router.post("/finalize", response_model=FinalizeRead)
def finalize_day(request: FinalizeRequest, services: Services = Depends(get_services)):
    """Purge the day's operational records once every check passes"""
    result = services.end_of_day.finalize_day(request.date)
    return FinalizeRead(ok=result.ok, reason=result.reason, cleared=result.cleared)

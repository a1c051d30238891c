"""
Analytics API.

- POST /api/analytics/pageview - Record a page view (public)
- GET /api/admin/analytics - Dashboard counts with period-over-period change
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.adapters.sqlite_db import SQLitePageViewRepo
from src.api.deps import get_current_user, get_page_view_repo, get_rules
from src.components.analytics import RecordPageViewInput, dashboard, record_page_view
from src.domain.entities import User
from src.rules.models import Rules

router = APIRouter()
admin_router = APIRouter()


# --- Request/Response Models ---


class PageViewRequest(BaseModel):
    path: str = Field(..., description="Site-relative path, e.g. /projects/42")


class PageViewResponse(BaseModel):
    success: bool


class MetricStatsResponse(BaseModel):
    count: int = Field(..., description="All-time total")
    change: int = Field(..., description="Current period minus previous period")
    percentage: int = Field(..., description="Change relative to previous period")


class DailyCountResponse(BaseModel):
    date: str
    count: int


class PathCountResponse(BaseModel):
    path: str
    count: int


class DashboardResponse(BaseModel):
    days: int
    stats: dict[str, MetricStatsResponse]
    daily_pageviews: list[DailyCountResponse]
    top_pages: list[PathCountResponse]


# --- Endpoints ---


@router.post("/pageview", response_model=PageViewResponse)
def ingest_page_view(
    body: PageViewRequest,
    repo: SQLitePageViewRepo = Depends(get_page_view_repo),
) -> PageViewResponse | JSONResponse:
    result = record_page_view(RecordPageViewInput(path=body.path), repo)
    if not result.success:
        error = result.errors[0]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": error.message, "code": error.code},
        )
    return PageViewResponse(success=True)


@admin_router.get("", response_model=DashboardResponse)
def get_dashboard(
    days: int | None = Query(None, ge=1, le=365, description="Period length in days"),
    user: User = Depends(get_current_user),
    rules: Rules = Depends(get_rules),
    counter: SQLitePageViewRepo = Depends(get_page_view_repo),
) -> DashboardResponse:
    """Counts for every metric compared with the preceding period of equal length."""
    result = dashboard(counter, days=days or rules.analytics.default_period_days)
    return DashboardResponse(
        days=result.days,
        stats={
            metric: MetricStatsResponse(
                count=s.count, change=s.change, percentage=s.percentage
            )
            for metric, s in result.stats.items()
        },
        daily_pageviews=[
            DailyCountResponse(date=d.date, count=d.count) for d in result.daily_pageviews
        ],
        top_pages=[PathCountResponse(path=p.path, count=p.count) for p in result.top_pages],
    )

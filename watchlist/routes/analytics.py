"""Analytics and export endpoints for compliance reporting."""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Query, Request, Response

from watchlist.export import export_results
from watchlist.models import AnalyticsSnapshot, ScreeningStatus

router = APIRouter(prefix="/api")


@router.get("/analytics", response_model=AnalyticsSnapshot)
async def get_analytics(request: Request) -> AnalyticsSnapshot:
    """Return the rolling screening and review counters."""
    return request.app.state.engine.analytics.snapshot()


@router.get("/export")
async def export(
    request: Request,
    format: Literal["json", "csv"] = Query(default="json"),
    from_date: Optional[datetime] = Query(default=None),
    to_date: Optional[datetime] = Query(default=None),
    status: Optional[ScreeningStatus] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
):
    """Export screening results as JSON records or a CSV with one row per match.

    Filters:
      - from_date / to_date: completion time range
      - status: completed or failed
      - user_id: the submitter recorded on the request
    """
    exported = export_results(
        request.app.state.store,
        fmt=format,
        start=from_date,
        end=to_date,
        status=status,
        user_id=user_id,
    )
    if format == "csv":
        return Response(
            content=exported,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="screening_results.csv"'},
        )
    return exported

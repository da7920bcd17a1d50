from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from skincheck.api.deps.access import AccessGuard
from skincheck.api.deps.state import get_feed
from skincheck.config import load_settings
from skincheck.errors import SubscriptionError
from skincheck.models.evaluation import EvaluationRecord
from skincheck.services.evaluation_feed import EvaluationFeed
from skincheck.services.summaries import build_dashboard, summarize_monthly

router = APIRouter(prefix="/summaries", tags=["summaries"], dependencies=[AccessGuard])

MONTH_PATTERN = r"^\d{4}-\d{2}$"


async def _all_records(feed: EvaluationFeed) -> list[EvaluationRecord]:
    try:
        return await feed.fetch()
    except SubscriptionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message
        ) from exc


@router.get("/monthly")
async def monthly_summary(feed: EvaluationFeed = Depends(get_feed)):
    records = await _all_records(feed)
    tz = load_settings().timezone
    return {"monthly": [summary.to_dict() for summary in summarize_monthly(records, tz)]}


@router.get("/dashboard")
async def dashboard(
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    feed: EvaluationFeed = Depends(get_feed),
):
    records = await _all_records(feed)
    tz = load_settings().timezone
    return build_dashboard(records, month, tz).to_dict()

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from skincheck.api.deps.access import AccessGuard
from skincheck.api.deps.state import get_feed
from skincheck.services.evaluation_feed import EvaluationFeed

router = APIRouter(prefix="/hooks", tags=["hooks"], dependencies=[AccessGuard])


@router.post("/evaluations", status_code=status.HTTP_202_ACCEPTED)
async def evaluations_changed(feed: EvaluationFeed = Depends(get_feed)):
    # Called by the store's afterSave/afterDelete hooks for writes made
    # outside this service.
    await feed.notify_changed()
    return {"subscribers": feed.subscriber_count}

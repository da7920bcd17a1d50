from typing import Any

from fastapi import APIRouter, Response, status

from skincheck.api.deps.access import check_access_key
from skincheck.api.routes.assessors import router as assessors_router
from skincheck.api.routes.bmi import router as bmi_router
from skincheck.api.routes.evaluations import router as evaluations_router
from skincheck.api.routes.hooks import router as hooks_router
from skincheck.api.routes.summaries import router as summaries_router

api_router = APIRouter()
api_router.include_router(evaluations_router)
api_router.include_router(summaries_router)
api_router.include_router(assessors_router)
api_router.include_router(bmi_router)
api_router.include_router(hooks_router)


@api_router.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@api_router.post("/login", status_code=status.HTTP_204_NO_CONTENT)
def login(payload: dict[str, Any]) -> Response:
    access_key = payload.get("accessKey")
    check_access_key(access_key if isinstance(access_key, str) else None)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from activity_log.core.config import settings
from activity_log.core.dependencies import get_current_user
from activity_log.models.auth import UserInfo

router = APIRouter(prefix="/health", tags=["health"])


async def _probe(component) -> str:
    if component is None or not component.initialized:
        return "not_configured"
    try:
        return "ok" if await component.check_connection() else "error"
    except Exception:
        return "error"


@router.get("")
async def health_check(request: Request):
    state = request.app.state
    services = {
        "cosmos_db": await _probe(getattr(state, "document_store", None)),
        "identity_provider": await _probe(getattr(state, "identity_provider", None)),
    }

    all_ok = all(v in ("ok", "not_configured") for v in services.values())

    return {
        "status": "healthy" if all_ok else "degraded",
        "version": settings.APP_VERSION,
        "services": services,
    }


@router.get("/protected")
async def health_protected(user: UserInfo = Depends(get_current_user)):
    return {"status": "ok", "user": user.model_dump()}


@router.get("/ready")
async def readiness_probe():
    return {"ready": True}

from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request, status

from activity_log.core.auth import validate_token
from activity_log.core.config import settings
from activity_log.models.auth import UserInfo
from activity_log.services.activity_service import ActivityService
from activity_log.services.employee_service import EmployeeService
from activity_log.services.feedback_service import FeedbackService

logger = logging.getLogger(__name__)


async def get_current_user(authorization: str | None = Header(None)) -> UserInfo:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ", 1)[1]

    try:
        payload = await validate_token(
            token,
            settings.AZURE_AD_TENANT_ID,
            settings.AZURE_AD_CLIENT_ID,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Token validation error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return UserInfo(
        id=payload.get("oid"),
        name=payload.get("name"),
        email=payload.get("preferred_username") or payload.get("email"),
    )


def require_email(user: UserInfo) -> str:
    if not user.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token carries no email claim",
        )
    return user.email


def get_employee_service(request: Request) -> EmployeeService:
    return request.app.state.employee_service


def get_activity_service(request: Request) -> ActivityService:
    return request.app.state.activity_service


def get_feedback_service(request: Request) -> FeedbackService:
    return request.app.state.feedback_service

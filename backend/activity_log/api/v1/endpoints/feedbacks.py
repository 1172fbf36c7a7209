from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from activity_log.core.dependencies import get_current_user, get_feedback_service, require_email
from activity_log.core.exceptions import PermissionDeniedError, StoreUnavailableError, ValidationError
from activity_log.models.auth import UserInfo
from activity_log.models.feedback import (
    FeedbackInput,
    FeedbackListResponse,
    FeedbackResponse,
    TargetFeedbacksResponse,
)
from activity_log.services.feedback_service import FeedbackService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedbacks", tags=["feedbacks"])


def _translate(err: Exception, action: str) -> HTTPException:
    if isinstance(err, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message)
    if isinstance(err, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(err))
    logger.exception("Failed to %s", action)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Failed to {action}")


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackInput,
    service: FeedbackService = Depends(get_feedback_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    email = require_email(user)
    try:
        feedback = await service.submit_feedback(body, email)
    except (ValidationError, PermissionDeniedError, StoreUnavailableError) as err:
        raise _translate(err, "send feedback") from err
    return FeedbackResponse(feedback=feedback)


@router.get("/latest", response_model=FeedbackListResponse)
async def latest_feedbacks(
    limit: int = 1,
    service: FeedbackService = Depends(get_feedback_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    email = require_email(user)
    try:
        feedbacks = await service.latest_feedbacks(email, limit=limit)
    except (PermissionDeniedError, StoreUnavailableError) as err:
        raise _translate(err, "load feedbacks") from err
    return FeedbackListResponse(feedbacks=feedbacks)


@router.get("/activity/{activity_id}", response_model=FeedbackResponse)
async def feedback_for_activity(
    activity_id: str,
    service: FeedbackService = Depends(get_feedback_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    email = require_email(user)
    try:
        feedback = await service.feedback_for_activity(activity_id, email)
    except (ValidationError, PermissionDeniedError, StoreUnavailableError) as err:
        raise _translate(err, "load activity feedback") from err
    return FeedbackResponse(feedback=feedback)


@router.get("/mine", response_model=TargetFeedbacksResponse)
async def my_feedbacks(
    service: FeedbackService = Depends(get_feedback_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    email = require_email(user)
    try:
        activity_ids, feedbacks = await service.feedbacks_for_target(email)
    except StoreUnavailableError as err:
        raise _translate(err, "load feedbacks") from err
    return TargetFeedbacksResponse(activities=activity_ids, feedbacks=feedbacks)

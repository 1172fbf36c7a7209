from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from activity_log.core.dependencies import get_activity_service, get_current_user
from activity_log.core.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from activity_log.models.activity import ActivityInput, ActivityListResponse, ActivityResponse
from activity_log.models.auth import UserInfo
from activity_log.services.activity_service import ActivityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("", response_model=ActivityListResponse)
async def list_activities(
    service: ActivityService = Depends(get_activity_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        activities = await service.list_activities()
    except StoreUnavailableError as err:
        logger.exception("Failed to list activities")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to retrieve activities",
        ) from err

    return ActivityListResponse(activities=activities)


@router.post("", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    body: ActivityInput,
    service: ActivityService = Depends(get_activity_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        activity = await service.create_activity(body, user.email)
    except ValidationError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message) from err
    except StoreUnavailableError as err:
        logger.exception("Failed to create activity")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to save activity",
        ) from err

    return ActivityResponse(activity=activity)


@router.put("/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: str,
    body: ActivityInput,
    service: ActivityService = Depends(get_activity_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        activity = await service.update_activity(activity_id, body, user.email)
    except NotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found") from err
    except ValidationError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message) from err
    except StoreUnavailableError as err:
        logger.exception("Failed to update activity %s", activity_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to update activity",
        ) from err

    return ActivityResponse(activity=activity)


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: str,
    service: ActivityService = Depends(get_activity_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        await service.delete_activity(activity_id)
    except NotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found") from err
    except StoreUnavailableError as err:
        logger.exception("Failed to delete activity %s", activity_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to delete activity",
        ) from err

    return {"message": "Activity removed"}

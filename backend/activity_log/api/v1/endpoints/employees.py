from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from activity_log.core.dependencies import get_current_user, get_employee_service
from activity_log.core.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from activity_log.models.auth import UserInfo
from activity_log.models.employee import EmployeeInput, EmployeeListResponse, EmployeeResponse
from activity_log.services.employee_service import EmployeeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


def _store_unavailable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    service: EmployeeService = Depends(get_employee_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        employees = await service.list_employees()
    except StoreUnavailableError as err:
        logger.exception("Failed to list employees")
        raise _store_unavailable("Failed to retrieve employees") from err

    return EmployeeListResponse(employees=employees)


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    body: EmployeeInput,
    service: EmployeeService = Depends(get_employee_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        employee = await service.create_employee(body.full_name, body.registration_id, body.role, body.photo_url)
    except ValidationError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message) from err
    except StoreUnavailableError as err:
        logger.exception("Failed to create employee")
        raise _store_unavailable("Failed to save employee") from err

    return EmployeeResponse(employee=employee)


@router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    body: EmployeeInput,
    service: EmployeeService = Depends(get_employee_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        employee = await service.update_employee(
            employee_id, body.full_name, body.registration_id, body.role, body.photo_url
        )
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Employee '{employee_id}' not found",
        ) from err
    except ValidationError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message) from err
    except StoreUnavailableError as err:
        logger.exception("Failed to update employee %s", employee_id)
        raise _store_unavailable("Failed to update employee") from err

    return EmployeeResponse(employee=employee)


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),  # noqa: B008
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        await service.delete_employee(employee_id)
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Employee '{employee_id}' not found",
        ) from err
    except StoreUnavailableError as err:
        logger.exception("Failed to delete employee %s", employee_id)
        raise _store_unavailable("Failed to delete employee") from err

    return Response(status_code=status.HTTP_204_NO_CONTENT)

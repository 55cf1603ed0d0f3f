"""
Staff account endpoints for API v1 (administrators only).
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from event_checkin_api.app.core.security import require_admin
from event_checkin_api.app.schemas.staff import StaffCreate, StaffRead
from event_checkin_api.app.services.staff_service import StaffService


router = APIRouter()


@router.get("/", response_model=List[StaffRead])
async def list_staff(current_user: dict = Depends(require_admin)) -> List[StaffRead]:
    return await StaffService.list_staff()


@router.post("/", response_model=StaffRead, status_code=status.HTTP_201_CREATED)
async def create_staff(
    staff: StaffCreate,
    current_user: dict = Depends(require_admin),
) -> StaffRead:
    """Create an administrator (role 1) or scanner (role 2) account.

    Returns 409 if the email is already registered.
    """
    try:
        return await StaffService.create_staff(staff, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e


@router.delete("/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff(
    staff_id: int,
    current_user: dict = Depends(require_admin),
) -> None:
    try:
        deleted = await StaffService.delete_staff(staff_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff account not found")
    return None

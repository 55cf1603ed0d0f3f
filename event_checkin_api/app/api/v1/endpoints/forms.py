"""
Event form endpoints for API v1.

Administrators build registration forms here and choose which one is
published.  The published form is the only one exposed publicly, via
``GET /forms/published``; at most one form is published at a time.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from event_checkin_api.app.core.security import require_admin
from event_checkin_api.app.schemas.form import EventFormCreate, EventFormRead, EventFormUpdate
from event_checkin_api.app.schemas.registration import RegistrationList, RegistrationStats
from event_checkin_api.app.services.form_service import FormService


router = APIRouter()


async def _get_form_or_404(form_id: int) -> EventFormRead:
    form = await FormService.get_event_form(form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return form


@router.get("/published", response_model=Optional[EventFormRead])
async def get_published_form() -> Optional[EventFormRead]:
    """Return the currently published form, or ``null`` if none is live."""
    return await FormService.get_published_form()


@router.get("/", response_model=List[EventFormRead])
async def list_forms(current_user: dict = Depends(require_admin)) -> List[EventFormRead]:
    return await FormService.get_all_event_forms()


@router.post("/", response_model=EventFormRead, status_code=status.HTTP_201_CREATED)
async def create_form(
    form: EventFormCreate,
    current_user: dict = Depends(require_admin),
) -> EventFormRead:
    """Create a new form.  New forms always start unpublished."""
    return await FormService.create_event_form(form, current_user)


@router.get("/{form_id}", response_model=EventFormRead)
async def get_form(form_id: int, current_user: dict = Depends(require_admin)) -> EventFormRead:
    return await _get_form_or_404(form_id)


@router.put("/{form_id}", response_model=EventFormRead)
async def update_form(
    form_id: int,
    updates: EventFormUpdate,
    current_user: dict = Depends(require_admin),
) -> EventFormRead:
    """Partially update a form; fields left out of the body are unchanged."""
    try:
        updated = await FormService.update_event_form(
            form_id,
            updates.model_dump(mode="json", exclude_unset=True),
            current_user,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return await _get_form_or_404(form_id)


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form(form_id: int, current_user: dict = Depends(require_admin)) -> None:
    if not await FormService.delete_event_form(form_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return None


@router.post("/{form_id}/publish", response_model=EventFormRead)
async def publish_form(form_id: int, current_user: dict = Depends(require_admin)) -> EventFormRead:
    """Publish a form, unpublishing whichever form was live before."""
    if not await FormService.publish_event_form(form_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return await _get_form_or_404(form_id)


@router.post("/{form_id}/unpublish", response_model=EventFormRead)
async def unpublish_form(form_id: int, current_user: dict = Depends(require_admin)) -> EventFormRead:
    if not await FormService.unpublish_event_form(form_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return await _get_form_or_404(form_id)


@router.get("/{form_id}/registrations", response_model=RegistrationList)
async def list_form_registrations(
    form_id: int,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_admin),
) -> RegistrationList:
    """Registrations submitted through one form, with the total count."""
    await _get_form_or_404(form_id)
    registrations = await FormService.get_registrations_by_form_id(form_id, limit=limit, offset=offset)
    total = await FormService.get_registrations_by_form_id_count(form_id)
    return RegistrationList(registrations=registrations, total=total, limit=limit, offset=offset)


@router.get("/{form_id}/stats", response_model=RegistrationStats)
async def get_form_stats(form_id: int, current_user: dict = Depends(require_admin)) -> RegistrationStats:
    await _get_form_or_404(form_id)
    return await FormService.get_form_stats(form_id)

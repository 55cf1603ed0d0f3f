"""
Registration endpoints for API v1.

Attendees submit registrations and look up their own ticket without
authentication; everything else (listing, editing, issuing QR codes,
exports) is reserved for administrators.  Issuing a QR code also
queues the ticket email as a background task.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status
from starlette.concurrency import run_in_threadpool

from event_checkin_api.app.core.security import require_admin
from event_checkin_api.app.schemas.registration import (
    RegistrationCreate,
    RegistrationList,
    RegistrationRead,
    RegistrationUpdate,
)
from event_checkin_api.app.services.email_service import EmailService
from event_checkin_api.app.services.export_service import EXPORT_MEDIA_TYPES, ExportService
from event_checkin_api.app.services.qr_service import QRCodeService
from event_checkin_api.app.services.registration_service import RegistrationService


router = APIRouter()


def _render_export(export_format: str, registrations: List[RegistrationRead]) -> bytes:
    if export_format == "pdf":
        return ExportService.export_to_pdf(registrations)
    if export_format == "xlsx":
        return ExportService.export_to_excel(registrations)
    return ExportService.export_to_csv(registrations).encode("utf-8")


async def _get_registration_or_404(registration_id: str) -> RegistrationRead:
    registration = await RegistrationService.get_registration(registration_id)
    if registration is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    return registration


@router.post("/", response_model=RegistrationRead, status_code=status.HTTP_201_CREATED)
async def create_registration(registration: RegistrationCreate) -> RegistrationRead:
    """Submit a registration (public).

    When ``form_id`` is given the form must exist (404) and be
    published (400), and the form's required fields must be filled.
    """
    try:
        return await RegistrationService.create_registration(registration)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.get("/", response_model=RegistrationList)
async def list_registrations(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    form_id: Optional[int] = Query(None, description="Only registrations submitted through this form"),
    search: Optional[str] = Query(None, description="Case-insensitive match on id, name, email, phone, organization or status"),
    current_user: dict = Depends(require_admin),
) -> RegistrationList:
    registrations = await RegistrationService.list_registrations(
        limit=limit,
        offset=offset,
        form_id=form_id,
        search=search,
    )
    total = await RegistrationService.count_registrations(form_id=form_id, search=search)
    return RegistrationList(registrations=registrations, total=total, limit=limit, offset=offset)


@router.get("/export")
async def export_registrations(
    export_format: str = Query("csv", alias="format", pattern="^(csv|pdf|xlsx)$"),
    form_id: Optional[int] = Query(None),
    current_user: dict = Depends(require_admin),
) -> Response:
    """Download registrations as CSV, PDF or Excel."""
    registrations = await RegistrationService.list_registrations(form_id=form_id)
    # CPU-bound rendering runs in the threadpool, off the event loop.
    content = await run_in_threadpool(_render_export, export_format, registrations)
    filename = f"registrations-{datetime.now().strftime('%Y-%m-%d')}.{export_format}"
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{registration_id}", response_model=RegistrationRead)
async def get_registration(registration_id: str) -> RegistrationRead:
    """Look up a ticket by its id (public, used by the ticket page)."""
    return await _get_registration_or_404(registration_id)


@router.put("/{registration_id}", response_model=RegistrationRead)
async def update_registration(
    registration_id: str,
    updates: RegistrationUpdate,
    current_user: dict = Depends(require_admin),
) -> RegistrationRead:
    try:
        updated = await RegistrationService.update_registration(
            registration_id,
            updates.model_dump(mode="json", exclude_unset=True),
            current_user,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    return await _get_registration_or_404(registration_id)


@router.delete("/{registration_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_registration(
    registration_id: str,
    current_user: dict = Depends(require_admin),
) -> None:
    if not await RegistrationService.delete_registration(registration_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    return None


@router.post("/{registration_id}/qr", response_model=RegistrationRead)
async def generate_qr_code(
    registration_id: str,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_admin),
) -> RegistrationRead:
    """Issue the QR ticket and queue the ticket email.

    Email delivery runs after the response is sent; failures are logged
    and never affect the issued ticket.
    """
    if not await RegistrationService.generate_qr_code(registration_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    registration = await _get_registration_or_404(registration_id)
    background_tasks.add_task(
        EmailService.send_qr_code_email,
        registration,
        registration.qr_code_data,
        QRCodeService.registration_url(registration_id),
    )
    return registration


@router.delete("/{registration_id}/qr", response_model=RegistrationRead)
async def revoke_qr_code(
    registration_id: str,
    current_user: dict = Depends(require_admin),
) -> RegistrationRead:
    """Withdraw the QR ticket; the registration returns to ``pending`` with zero scans."""
    if not await RegistrationService.revoke_qr_code(registration_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    return await _get_registration_or_404(registration_id)


@router.get("/{registration_id}/qr.png")
async def get_qr_code_png(registration_id: str) -> Response:
    """The ticket QR code as a PNG image (public)."""
    registration = await _get_registration_or_404(registration_id)
    if not registration.has_qr or not registration.qr_code_data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="QR code not generated yet")
    try:
        png = QRCodeService.data_url_to_png(registration.qr_code_data)
    except ValueError:
        png = QRCodeService.render_png(QRCodeService.verification_url(registration_id))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="QR-Code-{registration_id}.png"'},
    )

"""
Door check-in endpoints for API v1.

``GET /verify`` is what scanner devices call for every QR code they
read.  It always answers 200 with a ``valid`` flag and a message for
the door staff; rejected tickets are not HTTP errors.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from event_checkin_api.app.core.security import require_admin, require_staff
from event_checkin_api.app.schemas.registration import RegistrationStats, ScanRecord, ScanResult
from event_checkin_api.app.services.statistics_service import StatisticsService
from event_checkin_api.app.services.ticket_service import TicketService


router = APIRouter()


@router.get("/verify", response_model=ScanResult)
async def verify_ticket(
    t: str = Query(..., min_length=1, description="Ticket id read from the QR code"),
    current_user: dict = Depends(require_staff),
) -> ScanResult:
    """Validate a ticket and consume one scan if it is admissible."""
    return await TicketService.verify_and_scan(t, current_user)


@router.get("/scan-history", response_model=List[ScanRecord])
async def scan_history(
    limit: int = Query(50, ge=1, le=500),
    ticket_id: Optional[str] = Query(None),
    current_user: dict = Depends(require_admin),
) -> List[ScanRecord]:
    """Most recent scan attempts first, including rejected ones."""
    return await TicketService.get_scan_history(limit=limit, ticket_id=ticket_id)


@router.get("/stats", response_model=RegistrationStats)
async def get_stats(current_user: dict = Depends(require_admin)) -> RegistrationStats:
    return await StatisticsService.get_stats()

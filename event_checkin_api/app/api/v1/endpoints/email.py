"""
Email configuration endpoints for API v1 (administrators only).
"""

from fastapi import APIRouter, Depends

from event_checkin_api.app.core.config import settings
from event_checkin_api.app.core.security import require_admin
from event_checkin_api.app.services.email_service import EmailService


router = APIRouter()


@router.get("/status")
async def email_status(current_user: dict = Depends(require_admin)) -> dict:
    """Report whether ticket emails can be sent.  The API key is never returned."""
    return {
        "configured": EmailService.is_email_configured(),
        "provider": "brevo",
        "from_email": settings.email_from,
        "from_name": settings.email_from_name,
    }


@router.post("/test")
async def test_email(current_user: dict = Depends(require_admin)) -> dict:
    """Check the Brevo API key against the provider."""
    success = EmailService.test_email_connection()
    return {
        "success": success,
        "message": "Brevo connection verified" if success else "Brevo connection failed; see server logs",
    }

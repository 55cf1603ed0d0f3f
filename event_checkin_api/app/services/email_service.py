"""
Transactional email via the Brevo (Sendinblue) HTTP API.

Only one message is sent by the system: the ticket email carrying the
attendee's QR code, both inline and as a PNG attachment.  Sending is
best effort.  Every method returns ``False`` instead of raising when
Brevo is not configured, rejects the request or cannot be reached, and
the reason is logged.  Callers run ``send_qr_code_email`` as a FastAPI
background task so the HTTP call never delays the admin response.
"""

import html
import logging
from typing import Any, Dict

import requests

from event_checkin_api.app.core.config import settings
from event_checkin_api.app.schemas.registration import RegistrationRead
from event_checkin_api.app.services.qr_service import DATA_URL_PREFIX


logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3"
REQUEST_TIMEOUT = 15

TICKET_EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white;
               padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
    .content {{ background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }}
    .qr-code {{ text-align: center; margin: 30px 0; padding: 20px; background: white; border-radius: 10px; }}
    .qr-code img {{ max-width: 300px; height: auto; }}
    .info-box {{ background: white; padding: 20px; margin: 20px 0; border-left: 4px solid #667eea;
                 border-radius: 5px; }}
    .button {{ display: inline-block; padding: 12px 30px; background: #667eea; color: white;
               text-decoration: none; border-radius: 5px; margin: 10px 0; }}
    .footer {{ text-align: center; margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd;
               color: #666; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>Your Event Registration</h1>
      <p>Registration ID: {id}</p>
    </div>
    <div class="content">
      <h2>Hello {name}!</h2>
      <p>Thank you for registering for our event. Your QR code is ready!</p>
      <div class="info-box">
        <strong>Registration Details:</strong><br>
        Name: {name}<br>
        Email: {email}<br>
        Organization: {organization}<br>
        Group Size: {group_size}<br>
        Registration ID: {id}
      </div>
      <div class="qr-code">
        <h3>Your QR Code</h3>
        <img src="{qr_code}" alt="QR Code" />
        <p style="color: #666; font-size: 14px;">
          Download the attached QR code image or show it on your phone at the event
        </p>
      </div>
      <div style="text-align: center;">
        <a href="{verification_url}" class="button">View Your Registration</a>
      </div>
      <div class="info-box">
        <strong>Important:</strong><br>
        &bull; Please save this email or take a screenshot of the QR code<br>
        &bull; Show this QR code at the event entrance<br>
        &bull; Your QR code can be scanned up to {max_scans} time(s) for entry<br>
        &bull; Keep your registration ID ({id}) handy
      </div>
    </div>
    <div class="footer">
      <p>This is an automated email. Please do not reply to this message.</p>
      <p>If you have any questions, please contact the event organizers.</p>
    </div>
  </div>
</body>
</html>
"""


def _headers() -> Dict[str, str]:
    return {
        "accept": "application/json",
        "api-key": settings.brevo_api_key,
        "content-type": "application/json",
    }


def _error_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class EmailService:
    """Brevo-backed sender for ticket emails."""

    @staticmethod
    def is_email_configured() -> bool:
        return bool(settings.brevo_api_key)

    @staticmethod
    def log_configuration() -> None:
        """Log the effective email configuration without revealing the key."""
        logger.info(
            "Email service: Brevo, API key %s, sender %s <%s>",
            f"set ({len(settings.brevo_api_key)} chars)" if settings.brevo_api_key else "NOT SET",
            settings.email_from_name,
            settings.email_from,
        )

    @staticmethod
    def build_ticket_email(
        registration: RegistrationRead,
        qr_code_data_url: str,
        verification_url: str,
    ) -> Dict[str, Any]:
        """Build the Brevo ``/smtp/email`` payload for a ticket."""
        html_content = TICKET_EMAIL_TEMPLATE.format(
            id=html.escape(registration.id),
            name=html.escape(registration.name),
            email=html.escape(registration.email),
            organization=html.escape(registration.organization),
            group_size=registration.group_size,
            max_scans=registration.max_scans,
            qr_code=html.escape(qr_code_data_url, quote=True),
            verification_url=html.escape(verification_url, quote=True),
        )
        attachment = qr_code_data_url
        if attachment.startswith(DATA_URL_PREFIX):
            attachment = attachment[len(DATA_URL_PREFIX):]
        return {
            "sender": {"name": settings.email_from_name, "email": settings.email_from},
            "to": [{"email": registration.email, "name": registration.name or registration.email}],
            "subject": f"Your Event QR Code - {registration.id}",
            "htmlContent": html_content,
            "attachment": [{"content": attachment, "name": f"QR-Code-{registration.id}.png"}],
        }

    @classmethod
    def send_qr_code_email(
        cls,
        registration: RegistrationRead,
        qr_code_data_url: str,
        verification_url: str,
    ) -> bool:
        """Send the ticket email.  Returns ``True`` once Brevo accepts it."""
        if not cls.is_email_configured():
            logger.warning("Brevo API key not configured; skipping ticket email for %s", registration.id)
            return False
        if not registration.email:
            logger.warning("Registration %s has no email address; skipping ticket email", registration.id)
            return False

        payload = cls.build_ticket_email(registration, qr_code_data_url, verification_url)
        logger.info("Sending ticket email for %s to %s", registration.id, registration.email)
        try:
            response = requests.post(
                f"{BREVO_API_URL}/smtp/email",
                json=payload,
                headers=_headers(),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException:
            logger.exception("Error sending ticket email for %s", registration.id)
            return False
        if not response.ok:
            logger.error(
                "Brevo API error %s for %s: %s",
                response.status_code,
                registration.id,
                _error_body(response),
            )
            return False
        body = _error_body(response) if response.content else {}
        logger.info(
            "Ticket email for %s accepted by Brevo (message id %s)",
            registration.id,
            body.get("messageId") if isinstance(body, dict) else None,
        )
        return True

    @classmethod
    def test_email_connection(cls) -> bool:
        """Check the API key against Brevo's account endpoint."""
        if not cls.is_email_configured():
            logger.error("Brevo API key not configured")
            return False
        try:
            response = requests.get(f"{BREVO_API_URL}/account", headers=_headers(), timeout=REQUEST_TIMEOUT)
        except requests.RequestException:
            logger.exception("Brevo connection failed")
            return False
        if not response.ok:
            logger.error("Brevo connection failed: %s", _error_body(response))
            return False
        account = _error_body(response)
        if isinstance(account, dict):
            plans = account.get("plan") or [{}]
            logger.info(
                "Brevo connection verified for %s (plan %s)",
                account.get("email"),
                plans[0].get("type", "unknown"),
            )
        return True

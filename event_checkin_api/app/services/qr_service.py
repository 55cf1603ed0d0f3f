"""
QR code rendering for tickets.

The QR code encodes the door verification URL for a ticket, so any
phone camera opens the check-in page and the in-app scanner can pull
the ``t`` parameter out of the URL.  Images are PNGs; for storage and
email they are wrapped in a ``data:`` URL.
"""

import base64
import io
from urllib.parse import urlencode

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from event_checkin_api.app.core.config import settings


DATA_URL_PREFIX = "data:image/png;base64,"


class QRCodeService:
    """Stateless helpers for building ticket QR codes."""

    @staticmethod
    def verification_url(ticket_id: str) -> str:
        """URL the QR code points at: ``{SITE_URL}/verify?t={ticket_id}``."""
        return f"{settings.site_url.rstrip('/')}/verify?{urlencode({'t': ticket_id})}"

    @staticmethod
    def registration_url(ticket_id: str) -> str:
        """Public page where an attendee can view their own ticket."""
        return f"{settings.site_url.rstrip('/')}/ticket/{ticket_id}"

    @staticmethod
    def render_png(content: str, box_size: int = 10, border: int = 4) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECT_M,
            box_size=box_size,
            border=border,
        )
        qr.add_data(content)
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    @classmethod
    def ticket_data_url(cls, ticket_id: str) -> str:
        """Render the ticket's QR code as a PNG ``data:`` URL."""
        png = cls.render_png(cls.verification_url(ticket_id))
        return DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")

    @staticmethod
    def data_url_to_png(data_url: str) -> bytes:
        """Decode a PNG ``data:`` URL back to raw bytes.

        Raises ``ValueError`` if the string is not a base64 PNG data URL.
        """
        if not data_url.startswith(DATA_URL_PREFIX):
            raise ValueError("Not a PNG data URL")
        return base64.b64decode(data_url[len(DATA_URL_PREFIX):], validate=True)

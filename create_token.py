"""Print a long-lived access token for a staff account.

Usage:
    python create_token.py [email] [days]

Defaults to ``ADMIN_EMAIL`` and 365 days.  The account must exist in
the database when the token is used.
"""
import sys

from event_checkin_api.app.core.config import settings
from event_checkin_api.app.core.security import create_access_token


if __name__ == "__main__":
    email = sys.argv[1] if len(sys.argv) > 1 else settings.admin_email
    days = int(sys.argv[2]) if len(sys.argv) > 2 else 365
    token = create_access_token({"sub": email.lower()}, expires_delta=days * 24 * 60 * 60)
    print(token)

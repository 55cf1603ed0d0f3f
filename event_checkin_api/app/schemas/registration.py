"""
Pydantic models for registrations and tickets.

A registration represents one attendee or group.  Its ``id`` doubles as
the ticket identifier encoded in the QR code, and ``scans`` is counted
against ``max_scans`` (one scan per group member) at the door.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RegistrationStatus(str, Enum):
    """Lifecycle of a ticket.

    ``pending`` until a QR code is issued, ``active`` once issued,
    ``checked-in`` after the first valid scan and ``exhausted`` when
    every allowed scan has been used.
    """

    PENDING = "pending"
    ACTIVE = "active"
    CHECKED_IN = "checked-in"
    EXHAUSTED = "exhausted"


class TeamMember(BaseModel):
    name: str = Field(..., min_length=1, examples=["Jane Roe"])
    email: Optional[str] = Field(None, examples=["jane.roe@example.com"])
    phone: Optional[str] = None


class RegistrationBase(BaseModel):
    name: str = Field("", examples=["John Doe"])
    email: str = Field("", examples=["john.doe@example.com"])
    phone: str = Field("", examples=["+1 (555) 123-4567"])
    organization: str = Field("", examples=["Acme Corporation"])
    group_size: int = Field(1, ge=1, examples=[2])
    form_id: Optional[int] = None
    custom_field_data: Dict[str, Any] = Field(default_factory=dict)
    team_members: List[TeamMember] = Field(default_factory=list)


class RegistrationCreate(RegistrationBase):
    """Schema for submitting a registration through a public form."""
    pass


class RegistrationUpdate(BaseModel):
    """Schema for editing a registration from the admin dashboard.

    All fields are optional; only fields present in the request are
    changed.  Scan counters and QR state are managed by dedicated
    endpoints and cannot be set here.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None
    group_size: Optional[int] = Field(None, ge=1)
    form_id: Optional[int] = None
    custom_field_data: Optional[Dict[str, Any]] = None
    team_members: Optional[List[TeamMember]] = None


class RegistrationRead(RegistrationBase):
    id: str
    scans: int = 0
    max_scans: int = 1
    has_qr: bool = False
    qr_code_data: Optional[str] = None
    status: RegistrationStatus = RegistrationStatus.PENDING
    created_at: str

    model_config = {
        "from_attributes": True,
    }


class RegistrationList(BaseModel):
    registrations: List[RegistrationRead]
    total: int
    limit: Optional[int] = None
    offset: int = 0


class ScanResult(BaseModel):
    """Outcome of presenting a ticket at the door.

    ``valid`` is false for unknown, unissued and exhausted tickets; the
    ``message`` is meant to be shown to the scanning staff verbatim.
    """

    valid: bool
    message: str
    registration: Optional[RegistrationRead] = None


class ScanRecord(BaseModel):
    id: int
    ticket_id: str
    scanned_at: str
    valid: bool
    message: Optional[str] = None


class RegistrationStats(BaseModel):
    total_registrations: int
    qr_codes_generated: int
    total_entries: int
    active_registrations: int

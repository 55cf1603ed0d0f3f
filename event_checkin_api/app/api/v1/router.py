"""
Top-level router for version 1 of the API.

This router aggregates domain-specific routers (forms, registrations,
check-in, etc.) under a unified prefix.  When new endpoints are added,
update this file to include their routers.
"""

from fastapi import APIRouter

from .endpoints import (
    audit,
    auth,
    email,
    forms,
    registrations,
    scans,
    staff,
    uploads,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(staff.router, prefix="/staff", tags=["staff"])
router.include_router(forms.router, prefix="/forms", tags=["forms"])
router.include_router(registrations.router, prefix="/registrations", tags=["registrations"])
# The check-in router defines /verify, /scan-history and /stats at the top level.
router.include_router(scans.router, tags=["check-in"])
router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
router.include_router(email.router, prefix="/email", tags=["email"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])

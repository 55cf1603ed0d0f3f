"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Each domain (forms, registrations, check-in, staff) has
its schemas in ``schemas``, its business logic in ``services`` and its
router in ``api/v1/endpoints``.
"""

from .main import app  # noqa: F401

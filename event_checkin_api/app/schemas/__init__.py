"""
Pydantic schema definitions for API payloads.

Schemas are separated from the SQLite rows so the API representation
(snake_case JSON, nested lists and maps) stays independent of how
records are stored.
"""

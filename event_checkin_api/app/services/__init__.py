"""
Service layer.

Each service encapsulates the business logic for a domain and talks
to SQLite through ``core.db``.  Services signal "not found" by
returning ``None``/``False`` and invalid input by raising
``ValueError``; routers translate both into HTTP errors.
"""

"""API Layer — ASGI guard middleware, health routes, and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - The guard middleware is the only place HTTP cookies/headers are read or written
"""

"""API Layer — FastAPI routes, identity extraction and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON responses (downloads excepted)

Design Decisions:
    - Thin routes delegate to services (ADR: impureim sandwich)
"""

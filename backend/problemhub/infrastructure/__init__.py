"""Infrastructure Layer — database sessions, blob storage and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All storage faults mapped to ProblemHubError subclasses (core/errors.py)

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""

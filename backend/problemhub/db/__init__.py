"""Database Metadata — SQLAlchemy declarative Base shared by models and alembic.

Invariants:
    - Single Base per process; engines live in infrastructure/database.py
"""

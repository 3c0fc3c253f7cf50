"""Services Layer — the three stores and the Problem Aggregate Service.

Invariants:
    - Stores never commit; ProblemService owns every transaction
    - Stores return ORM rows or result dicts, never HTTP types

Design Decisions:
    - One file per store for locality; orchestration only in problem_service.py
"""

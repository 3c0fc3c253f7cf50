"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Problem is the aggregate root; all entities scoped by problem_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from problemhub.models.problem import Problem  # noqa: F401
from problemhub.models.problem_statement import ProblemStatement  # noqa: F401
from problemhub.models.problem_permission import ProblemPermission  # noqa: F401
from problemhub.models.problem_file import ProblemFile  # noqa: F401

"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - ExplorerProfile is the per-user aggregate root; assignments and ledger
      entries are scoped by user_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from waypoint.models.place import Place  # noqa: F401
from waypoint.models.explorer_profile import ExplorerProfile  # noqa: F401
from waypoint.models.xp_ledger_entry import XpLedgerEntry  # noqa: F401
from waypoint.models.district_assignment import DistrictAssignment  # noqa: F401

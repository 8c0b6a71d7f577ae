"""
Module: estate_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/base.py,
    domain/ value types and models/.  MUST NOT import from services/ or
    outer layers.

Invariants enforced:
    - Read-only access: Selectors accept a Session from the caller but MUST NOT
      call session.add(), session.delete(), session.commit(), or session.flush().
    - Session ownership: Selectors do NOT create or manage their own sessions;
      the caller owns the session and its transaction scope.
    - Predicate selectors used by the sweep return the matching rows attached
      to the caller's session, so that the owning service mutates them in the
      same unit of work.  Reporting selectors return frozen DTOs.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return rows or DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session

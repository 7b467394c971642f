"""
Module: costing_kernel.selectors.base
Responsibility: Common plumbing for read-only selectors over scoped stock
    tables: the caller's session and the item / supplier scope filter.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), delete(),
      commit() or flush().
    - Selectors return frozen DTOs, never ORM instances.
    - Supplier comparison is trimmed and case-insensitive, matching
      ReportScope.matches().
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func
from sqlalchemy.orm import InstrumentedAttribute, Session

from costing_kernel.db.base import Base
from costing_kernel.domain.stock import ReportScope

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Holds the caller's session; the caller owns its transaction."""

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _apply_scope(
        stmt: Select[Any],
        scope: ReportScope | None,
        item_column: InstrumentedAttribute[str],
        supplier_column: InstrumentedAttribute[str | None],
    ) -> Select[Any]:
        if scope is None:
            return stmt
        if scope.item_id is not None:
            stmt = stmt.where(item_column == scope.item_id)
        if scope.supplier_id is not None:
            stmt = stmt.where(
                func.lower(func.trim(supplier_column)) == scope.supplier_id.lower()
            )
        return stmt

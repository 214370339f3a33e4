"""Calendar scope shared by schedules, exceptions, appointments and cached slots"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_


@dataclass(frozen=True)
class Scope:
    """
    (business, branch?, worker?) identifying a calendar.

    ``None`` for branch or worker means business-wide / any worker.
    """

    business_id: int
    branch_id: Optional[int] = None
    worker_id: Optional[int] = None

    def narrowed(self, branch_id: Optional[int], worker_id: Optional[int]) -> "Scope":
        """Scope of a rule or slot seen through this query scope"""
        return Scope(
            business_id=self.business_id,
            branch_id=branch_id if branch_id is not None else self.branch_id,
            worker_id=worker_id if worker_id is not None else self.worker_id,
        )


def _field_intersects(column, value):
    if value is None:
        return None
    return or_(column == value, column.is_(None))


def intersecting_scope_filters(model, scope: Scope) -> list:
    """
    Filters for rows whose scope intersects ``scope``.

    Same business; for branch and worker, either side being unset matches
    anything, otherwise the values must be equal.
    """
    filters = [model.business_id == scope.business_id]
    for column, value in ((model.branch_id, scope.branch_id), (model.worker_id, scope.worker_id)):
        clause = _field_intersects(column, value)
        if clause is not None:
            filters.append(clause)
    return filters


def exact_scope_filters(model, scope: Scope) -> list:
    """Filters for rows stored under exactly ``scope`` (NULL-safe)"""
    filters = [model.business_id == scope.business_id]
    for column, value in ((model.branch_id, scope.branch_id), (model.worker_id, scope.worker_id)):
        filters.append(column.is_(None) if value is None else column == value)
    return filters


def scopes_intersect(
    branch_a: Optional[int], worker_a: Optional[int], branch_b: Optional[int], worker_b: Optional[int]
) -> bool:
    """In-memory counterpart of intersecting_scope_filters for a single business"""
    branch_ok = branch_a is None or branch_b is None or branch_a == branch_b
    worker_ok = worker_a is None or worker_b is None or worker_a == worker_b
    return branch_ok and worker_ok

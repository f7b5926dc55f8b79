# src/upkeep/schedule/advancer.py

from __future__ import annotations

import logging
from datetime import date

from ..core.ports import Clock
from .dates import DateLike, parse_iso_date, shift_days, shift_months
from .models import Category, CompletionUpdate, MaintenanceTask

logger = logging.getLogger(__name__)


def next_due_date(base: date, category: Category | str | None) -> date:
    """Anchor date + one recurrence interval. Unknown categories recur weekly."""
    cat = Category.parse(category)
    if cat is Category.MONTHLY:
        return shift_months(base, 1)
    if cat is Category.HALF_YEAR:
        return shift_months(base, 6)
    if cat is Category.YEARLY:
        return shift_months(base, 12)
    if cat is None:
        logger.debug("Unknown category %r, falling back to weekly", category)
    return shift_days(base, 7)


def compute_next_from(
    base: DateLike | None,
    category: Category | str | None,
    *,
    clock: Clock,
) -> str:
    """
    Next due date (ISO string) after the given anchor.

    An absent or unparseable anchor means today.
    """
    anchor = parse_iso_date(base) or clock.today()
    return next_due_date(anchor, category).isoformat()


def advance_on_completion(task: MaintenanceTask, *, clock: Clock) -> CompletionUpdate:
    """
    Schedule after completing the task today.

    This is the only path that moves a due date forward; editing a task does not.
    """
    today = clock.today()
    return CompletionUpdate(
        last_service_date=today.isoformat(),
        next_service_date=next_due_date(today, task.category).isoformat(),
    )

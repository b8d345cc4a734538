"""Task query filters — optional, independent predicates combined with AND.

Learn: Every filter is optional. A blank or unrecognized parameter means
"don't filter on this", never "match nothing". The same predicates exist
twice with identical semantics:

- clauses(owner, now) → SQLAlchemy WHERE clauses for list queries
- matches(task, now)  → pure in-memory check for already-loaded tasks

Both take `now` explicitly so results are deterministic under test.

    q          case-insensitive substring of title OR content
    checked    true / false / unspecified
    next_days  due_to within [today 00:00, end of day today+N]  (UTC)
    expired    true: due_to < now, false: due_to > now (equality: neither)
    user_id    must equal the caller's uuid (never widens scope)
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import false, or_

from taskapi.db.models import Task, User, as_utc

TRUE_VALUES = frozenset({"true", "1", "t", "yes", "y", "on"})
FALSE_VALUES = frozenset({"false", "0", "f", "no", "n", "off"})


def parse_bool(value: Any) -> Optional[bool]:
    """Lenient tri-state parse: True, False, or None for anything else."""
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def parse_days(value: Any) -> Optional[int]:
    """Non-negative day count, or None for blank/non-integer/negative."""
    if value is None or isinstance(value, bool):
        return None
    try:
        days = int(str(value).strip())
    except ValueError:
        return None
    return days if days >= 0 else None


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def day_window(now: datetime, days: int) -> tuple[datetime, datetime]:
    """[start of today, end of the day `days` days from now], in UTC.

    A window reaching past the calendar ends on date.max.
    """
    now = as_utc(now)
    start = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    try:
        last_day = (now + timedelta(days=days)).date()
    except OverflowError:
        last_day = date.max
    end = datetime.combine(last_day, time.max, tzinfo=timezone.utc)
    return start, end


@dataclass(frozen=True)
class TaskFilters:
    """Parsed filter parameters. None = filter not applied."""

    q: Optional[str] = None
    checked: Optional[bool] = None
    next_days: Optional[int] = None
    expired: Optional[bool] = None
    user_id: Optional[str] = None

    @classmethod
    def from_params(
        cls,
        q: Optional[str] = None,
        checked: Any = None,
        next_days: Any = None,
        expired: Any = None,
        user_id: Optional[str] = None,
    ) -> "TaskFilters":
        """Build filters from raw query-string values."""
        return cls(
            q=None if _blank(q) else q,
            checked=parse_bool(checked),
            next_days=parse_days(next_days),
            expired=parse_bool(expired),
            user_id=None if _blank(user_id) else str(user_id).strip(),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.q is None
            and self.checked is None
            and self.next_days is None
            and self.expired is None
            and self.user_id is None
        )

    def _owner_matches(self, owner: User) -> bool:
        return self.user_id is None or self.user_id.lower() == str(owner.uuid).lower()

    # ─── SQL ─────────────────────────────────────────────

    def clauses(self, owner: User, now: datetime) -> list:
        """WHERE clauses for the owner's tasks. Always includes owner scope."""
        where = [Task.user_id == owner.id]
        if not self._owner_matches(owner):
            where.append(false())

        if self.q is not None:
            where.append(
                or_(
                    Task.title.icontains(self.q, autoescape=True),
                    Task.content.icontains(self.q, autoescape=True),
                )
            )
        if self.checked is not None:
            where.append(Task.checked == self.checked)
        if self.next_days is not None:
            start, end = day_window(now, self.next_days)
            where.append(Task.due_to.between(start, end))
        if self.expired is True:
            where.append(Task.due_to < now)
        elif self.expired is False:
            where.append(Task.due_to > now)
        return where

    # ─── In memory ───────────────────────────────────────

    def matches(self, task: Task, now: datetime, owner: Optional[User] = None) -> bool:
        """Same predicates as clauses(), evaluated on a loaded task."""
        if owner is not None:
            if task.user_id != owner.id or not self._owner_matches(owner):
                return False

        if self.q is not None:
            needle = self.q.lower()
            haystacks = (task.title or "", task.content or "")
            if not any(needle in h.lower() for h in haystacks):
                return False
        if self.checked is not None and bool(task.checked) != self.checked:
            return False

        due = as_utc(task.due_to)
        now = as_utc(now)
        if self.next_days is not None:
            start, end = day_window(now, self.next_days)
            if due is None or not (start <= due <= end):
                return False
        if self.expired is not None:
            if due is None:
                return False
            if self.expired and not due < now:
                return False
            if not self.expired and not due > now:
                return False
        return True

    def apply(self, tasks: list[Task], now: datetime, owner: Optional[User] = None) -> list[Task]:
        """Filter a loaded collection, ordered by id for stable paging."""
        return sorted(
            (t for t in tasks if self.matches(t, now, owner)),
            key=lambda t: t.id,
        )

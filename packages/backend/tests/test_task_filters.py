"""Task filter tests — parsing, in-memory predicates, SQL predicates.

Learn: The same filter semantics are checked two ways:
1. TaskFilters.matches/apply on plain Task objects (no database)
2. TaskService.list_tasks against SQLite, with a pinned clock

Both must agree on every boundary: blank params don't filter,
unrecognized booleans mean "unspecified", and a due date exactly
equal to now is neither expired nor upcoming.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from taskapi.db.models import Task, User
from taskapi.services.credential_store import CredentialStore
from taskapi.services.task_filters import (
    TaskFilters,
    day_window,
    parse_bool,
    parse_days,
)
from taskapi.services.task_service import TaskService

NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def make_task(task_id, title, content=None, checked=False, due_to=None, user_id=1):
    return Task(
        id=task_id,
        user_id=user_id,
        title=title,
        content=content,
        checked=checked,
        due_to=due_to,
    )


@pytest.fixture
def owner():
    return User(id=1, uuid=uuid.UUID("00000000-0000-0000-0000-000000000001"), name="Alice")


@pytest.fixture
def tasks():
    return [
        make_task(1, "Buy milk", due_to=NOW + timedelta(days=1)),
        make_task(2, "Buy eggs", content="a dozen", due_to=NOW + timedelta(days=30)),
        make_task(3, "Pay rent", checked=True, due_to=NOW - timedelta(days=2)),
        make_task(4, "Call mom", content="about MILK delivery", checked=True),
        make_task(5, "Due right now", due_to=NOW),
    ]


def ids(result):
    return [t.id for t in result]


# ═══════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize("raw", ["true", "TRUE", "1", "t", "yes", "on", True])
def test_parse_bool_true(raw):
    assert parse_bool(raw) is True


@pytest.mark.parametrize("raw", ["false", "False", "0", "f", "no", "off", False])
def test_parse_bool_false(raw):
    assert parse_bool(raw) is False


@pytest.mark.parametrize("raw", [None, "", "   ", "maybe", "2", "tru"])
def test_parse_bool_unrecognized_is_unspecified(raw):
    assert parse_bool(raw) is None


@pytest.mark.parametrize("raw,expected", [("7", 7), ("0", 0), (" 3 ", 3), (5, 5)])
def test_parse_days(raw, expected):
    assert parse_days(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "-1", "1.5", True])
def test_parse_days_ignored(raw):
    assert parse_days(raw) is None


def test_blank_params_build_empty_filters():
    filters = TaskFilters.from_params(q="  ", checked="", next_days="", expired=None, user_id="")
    assert filters.is_empty


def test_day_window_spans_whole_days():
    start, end = day_window(NOW, 7)
    assert start == datetime(2026, 3, 10, tzinfo=timezone.utc)
    assert end.date() == datetime(2026, 3, 17).date()
    assert (end.hour, end.minute, end.second) == (23, 59, 59)


@pytest.mark.parametrize("days", [3_000_000, 10**12])
def test_day_window_clamps_to_last_date(days):
    start, end = day_window(NOW, days)
    assert start == datetime(2026, 3, 10, tzinfo=timezone.utc)
    assert end == datetime.max.replace(tzinfo=timezone.utc)


def test_huge_next_days_matches_all_upcoming(tasks):
    assert ids(TaskFilters(next_days=10**12).apply(tasks, NOW)) == [1, 2, 5]


# ═══════════════════════════════════════════════════════════
# In-memory predicates
# ═══════════════════════════════════════════════════════════


def test_no_filters_returns_everything(tasks, owner):
    assert ids(TaskFilters().apply(tasks, NOW, owner)) == [1, 2, 3, 4, 5]


def test_q_matches_title_or_content_case_insensitively(tasks):
    assert ids(TaskFilters(q="milk").apply(tasks, NOW)) == [1, 4]
    assert ids(TaskFilters(q="DOZEN").apply(tasks, NOW)) == [2]
    assert ids(TaskFilters(q="bread").apply(tasks, NOW)) == []


def test_checked_partitions_tasks(tasks):
    done = ids(TaskFilters(checked=True).apply(tasks, NOW))
    open_ = ids(TaskFilters(checked=False).apply(tasks, NOW))
    assert done == [3, 4]
    assert open_ == [1, 2, 5]
    assert sorted(done + open_) == ids(tasks)


def test_expired_excludes_due_exactly_now(tasks):
    past = ids(TaskFilters(expired=True).apply(tasks, NOW))
    future = ids(TaskFilters(expired=False).apply(tasks, NOW))
    assert past == [3]
    assert future == [1, 2]
    assert 5 not in past + future  # due == now falls to neither


def test_next_days_window(tasks):
    assert ids(TaskFilters(next_days=7).apply(tasks, NOW)) == [1, 5]
    assert ids(TaskFilters(next_days=0).apply(tasks, NOW)) == [5]
    assert ids(TaskFilters(next_days=30).apply(tasks, NOW)) == [1, 2, 5]


def test_next_days_starts_at_beginning_of_today(tasks):
    earlier_today = make_task(6, "Morning standup", due_to=NOW.replace(hour=1))
    assert ids(TaskFilters(next_days=1).apply([earlier_today], NOW)) == [6]


def test_filters_combine_with_and(tasks):
    assert ids(TaskFilters(q="milk", next_days=7).apply(tasks, NOW)) == [1]
    assert ids(TaskFilters(q="milk", checked=True).apply(tasks, NOW)) == [4]
    assert ids(TaskFilters(q="milk", expired=True).apply(tasks, NOW)) == []


def test_owner_scope_always_applies(tasks, owner):
    foreign = make_task(9, "Buy milk", user_id=2)
    assert ids(TaskFilters(q="milk").apply(tasks + [foreign], NOW, owner)) == [1, 4]


def test_user_id_param_never_widens_scope(tasks, owner):
    mine = TaskFilters(user_id=str(owner.uuid))
    someone_else = TaskFilters(user_id=str(uuid.uuid4()))
    assert ids(mine.apply(tasks, NOW, owner)) == [1, 2, 3, 4, 5]
    assert ids(someone_else.apply(tasks, NOW, owner)) == []


# ═══════════════════════════════════════════════════════════
# SQL predicates (TaskService.list_tasks)
# ═══════════════════════════════════════════════════════════


@pytest.fixture
async def seeded(db_session):
    """Two users; Alice owns the same five tasks as above, Bob one."""
    store = CredentialStore(db_session, bcrypt_rounds=4)
    alice = await store.create_user("Alice", "alice@example.com", "password_123")
    bob = await store.create_user("Bob", "bob@example.com", "password_123")

    svc = TaskService(db_session, clock=lambda: NOW)
    created = []
    for fields in [
        {"title": "Buy milk", "due_to": NOW + timedelta(days=1)},
        {"title": "Buy eggs", "content": "a dozen", "due_to": NOW + timedelta(days=30)},
        {"title": "Pay rent", "checked": True, "due_to": NOW - timedelta(days=2)},
        {"title": "Call mom", "content": "about MILK delivery", "checked": True},
        {"title": "Due right now", "due_to": NOW},
    ]:
        created.append(await svc.create_task(alice, fields))
    await svc.create_task(bob, {"title": "Buy milk too", "due_to": NOW + timedelta(days=1)})
    return svc, alice, created


def titles(result):
    return [t.title for t in result]


@pytest.mark.asyncio
async def test_sql_no_filters_returns_owned_set(seeded):
    svc, alice, created = seeded
    result = await svc.list_tasks(alice)
    assert [t.id for t in result] == [t.id for t in created]


@pytest.mark.asyncio
async def test_sql_q_filter(seeded):
    svc, alice, _ = seeded
    assert titles(await svc.list_tasks(alice, TaskFilters(q="milk"))) == ["Buy milk", "Call mom"]
    assert titles(await svc.list_tasks(alice, TaskFilters(q="bread"))) == []


@pytest.mark.asyncio
async def test_sql_q_escapes_wildcards(seeded):
    svc, alice, _ = seeded
    assert titles(await svc.list_tasks(alice, TaskFilters(q="%"))) == []
    assert titles(await svc.list_tasks(alice, TaskFilters(q="_"))) == []


@pytest.mark.asyncio
async def test_sql_checked_filter(seeded):
    svc, alice, _ = seeded
    assert titles(await svc.list_tasks(alice, TaskFilters(checked=True))) == ["Pay rent", "Call mom"]
    assert titles(await svc.list_tasks(alice, TaskFilters(checked=False))) == [
        "Buy milk",
        "Buy eggs",
        "Due right now",
    ]


@pytest.mark.asyncio
async def test_sql_expired_filter_boundary(seeded):
    svc, alice, _ = seeded
    assert titles(await svc.list_tasks(alice, TaskFilters(expired=True))) == ["Pay rent"]
    assert titles(await svc.list_tasks(alice, TaskFilters(expired=False))) == ["Buy milk", "Buy eggs"]


@pytest.mark.asyncio
async def test_sql_next_days_and_q_scenario(seeded):
    svc, alice, _ = seeded
    assert titles(await svc.list_tasks(alice, TaskFilters(next_days=7))) == ["Buy milk", "Due right now"]
    assert titles(await svc.list_tasks(alice, TaskFilters(q="milk", next_days=7))) == ["Buy milk"]


@pytest.mark.asyncio
async def test_sql_and_memory_agree(seeded):
    """Every single-filter combination gives the same ids both ways."""
    svc, alice, created = seeded
    for filters in [
        TaskFilters(q="buy"),
        TaskFilters(checked=False),
        TaskFilters(next_days=1),
        TaskFilters(expired=True),
        TaskFilters(expired=False, checked=False),
        TaskFilters(user_id=str(uuid.uuid4())),
    ]:
        from_sql = [t.id for t in await svc.list_tasks(alice, filters)]
        in_memory = [t.id for t in filters.apply(created, NOW, alice)]
        assert from_sql == in_memory, filters


@pytest.mark.asyncio
async def test_sql_pagination_is_stable(seeded):
    svc, alice, created = seeded
    first = await svc.list_tasks(alice, limit=2, offset=0)
    second = await svc.list_tasks(alice, limit=2, offset=2)
    rest = await svc.list_tasks(alice, limit=2, offset=4)
    assert [t.id for t in first + second + rest] == [t.id for t in created]

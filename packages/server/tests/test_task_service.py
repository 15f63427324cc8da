"""
Service-layer tests against an in-memory database: CRUD rules, lifecycle
side effects, visibility scoping, search, pagination, and stats.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import NotFoundError, PermissionDenied, ReferenceNotFoundError, ValidationError
from app.services import tasks as task_service
from app.services.policy import Actor
from tasktracker_shared.schemas.common import TaskPriority, TaskStatus
from tasktracker_shared.schemas.tasks import TaskCreate, TaskFilters, TaskUpdate


def _actor(user) -> Actor:
    return Actor(id=user.id, role=user.role, is_active=user.is_active)


def _invariant_holds(task) -> bool:
    return (task.completed_at is not None) == (task.status == TaskStatus.COMPLETED.value)


# ---------------------------------------------------------------------------
# Create / update / status
# ---------------------------------------------------------------------------


class TestCreateTask:
    async def test_create_sets_creator_and_defaults(self, session, make_user):
        alice = await make_user("Alice")
        task = await task_service.create_task(session, _actor(alice), TaskCreate(title="Plan sprint"))
        assert task.created_by == alice.id
        assert task.status == "pending"
        assert task.priority == "medium"
        assert task.completed_at is None
        assert _invariant_holds(task)

    async def test_create_with_unknown_assignee(self, session, make_user):
        alice = await make_user("Alice")
        with pytest.raises(ReferenceNotFoundError):
            await task_service.create_task(
                session,
                _actor(alice),
                TaskCreate(title="Plan sprint", assigned_user_id=uuid.uuid4()),
            )

    async def test_create_rejects_short_title(self, session, make_user):
        alice = await make_user("Alice")
        with pytest.raises(ValidationError) as exc:
            await task_service.create_task(session, _actor(alice), TaskCreate(title="Hi"))
        assert exc.value.fields == ["title"]


class TestUpdateTask:
    async def test_assignee_can_update(self, session, make_user, make_task):
        alice, bob = await make_user("Alice"), await make_user("Bob")
        task = await make_task(alice, bob)
        updated = await task_service.update_task(
            session, _actor(bob), task, TaskUpdate(priority=TaskPriority.HIGH, description="More detail")
        )
        assert updated.priority == "high"
        assert updated.description == "More detail"

    async def test_stranger_cannot_update(self, session, make_user, make_task):
        alice, carol = await make_user("Alice"), await make_user("Carol")
        task = await make_task(alice)
        with pytest.raises(PermissionDenied):
            await task_service.update_task(session, _actor(carol), task, TaskUpdate(title="Hijacked"))

    async def test_status_through_update_maintains_completed_at(self, session, make_user, make_task):
        alice = await make_user("Alice")
        task = await make_task(alice)
        await task_service.update_task(session, _actor(alice), task, TaskUpdate(status=TaskStatus.COMPLETED))
        assert task.completed_at is not None
        assert _invariant_holds(task)

        await task_service.update_task(session, _actor(alice), task, TaskUpdate(status=TaskStatus.IN_PROGRESS))
        assert task.completed_at is None
        assert _invariant_holds(task)

    async def test_in_progress_to_pending_clears_completed_at(self, session, make_user, make_task):
        alice = await make_user("Alice")
        task = await make_task(
            alice, status="in-progress", completed_at=datetime.now(timezone.utc) - timedelta(days=1)
        )
        await task_service.change_status(session, _actor(alice), task, TaskStatus.PENDING)
        assert task.status == "pending"
        assert task.completed_at is None

    async def test_unassign_with_explicit_null(self, session, make_user, make_task):
        alice, bob = await make_user("Alice"), await make_user("Bob")
        task = await make_task(alice, bob)
        await task_service.update_task(session, _actor(alice), task, TaskUpdate(assigned_user_id=None))
        assert task.assigned_user_id is None

    async def test_past_due_date_rejected_on_update(self, session, make_user, make_task):
        alice = await make_user("Alice")
        task = await make_task(alice)
        yesterday = datetime.now(timezone.utc) - timedelta(days=1)
        with pytest.raises(ValidationError) as exc:
            await task_service.update_task(session, _actor(alice), task, TaskUpdate(due_date=yesterday))
        assert exc.value.fields == ["dueDate"]

    async def test_unchanged_past_due_date_is_not_rechecked(self, session, make_user, make_task):
        alice = await make_user("Alice")
        due = datetime.now(timezone.utc) - timedelta(days=3)
        task = await make_task(alice, due_date=due)
        updated = await task_service.update_task(
            session, _actor(alice), task, TaskUpdate(title="Renamed task", due_date=due)
        )
        assert updated.title == "Renamed task"

    async def test_moving_to_another_past_due_date_is_rejected(self, session, make_user, make_task):
        alice = await make_user("Alice")
        due = datetime.now(timezone.utc) - timedelta(days=3)
        task = await make_task(alice, due_date=due)
        with pytest.raises(ValidationError) as exc:
            await task_service.update_task(
                session, _actor(alice), task, TaskUpdate(due_date=due - timedelta(days=1))
            )
        assert exc.value.fields == ["dueDate"]

    async def test_update_with_unknown_assignee(self, session, make_user, make_task):
        alice = await make_user("Alice")
        task = await make_task(alice)
        with pytest.raises(ReferenceNotFoundError):
            await task_service.update_task(
                session, _actor(alice), task, TaskUpdate(assigned_user_id=uuid.uuid4())
            )


class TestLookupAndDelete:
    async def test_missing_task(self, session, make_user):
        alice = await make_user("Alice")
        with pytest.raises(NotFoundError):
            await task_service.get_task_for(session, _actor(alice), uuid.uuid4())

    async def test_malformed_id_fails_before_lookup(self, session, make_user):
        alice = await make_user("Alice")
        with pytest.raises(ValidationError):
            await task_service.get_task_for(session, _actor(alice), "123")

    async def test_assignee_cannot_delete(self, session, make_user, make_task):
        alice, bob = await make_user("Alice"), await make_user("Bob")
        task = await make_task(alice, bob)
        with pytest.raises(PermissionDenied):
            await task_service.delete_task(session, _actor(bob), task)

    async def test_admin_can_delete(self, session, make_user, make_task):
        alice = await make_user("Alice")
        admin = await make_user("Ada", role="admin")
        task = await make_task(alice)
        task_id = task.id
        await task_service.delete_task(session, _actor(admin), task)
        await session.commit()
        with pytest.raises(NotFoundError):
            await task_service.get_task_or_404(session, task_id)


# ---------------------------------------------------------------------------
# Query engine
# ---------------------------------------------------------------------------


class TestListTasks:
    async def test_non_admin_only_sees_own_or_assigned(self, session, make_user, make_task):
        alice, bob, carol = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
        mine = await make_task(alice, title="Alice's own")
        assigned = await make_task(bob, alice, title="Assigned to Alice")
        await make_task(bob, carol, title="Bob and Carol only")

        page = await task_service.list_tasks(session, _actor(alice), TaskFilters())
        ids = {t.id for t in page.tasks}
        assert ids == {mine.id, assigned.id}
        assert page.pagination.total_items == 2

    async def test_scope_survives_other_filters(self, session, make_user, make_task):
        alice, bob, carol = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
        await make_task(bob, carol, title="Hidden report")

        page = await task_service.list_tasks(
            session,
            _actor(alice),
            TaskFilters(assigned_user_id=carol.id, search="report", status=TaskStatus.PENDING),
        )
        assert page.tasks == []
        assert page.pagination.total_items == 0

    async def test_admin_sees_everything(self, session, make_user, make_task):
        alice, bob = await make_user("Alice"), await make_user("Bob")
        admin = await make_user("Ada", role="admin")
        await make_task(alice)
        await make_task(bob)
        page = await task_service.list_tasks(session, _actor(admin), TaskFilters())
        assert page.pagination.total_items == 2

    async def test_search_is_case_insensitive_substring(self, session, make_user, make_task):
        alice = await make_user("Alice")
        report = await make_task(alice, title="Quarterly Report")
        described = await make_task(alice, title="Numbers", description="Feeds the REPORTING deck")
        await make_task(alice, title="Unrelated chore")

        page = await task_service.list_tasks(session, _actor(alice), TaskFilters(search="report"))
        assert {t.id for t in page.tasks} == {report.id, described.id}

    async def test_search_treats_wildcards_literally(self, session, make_user, make_task):
        alice = await make_user("Alice")
        await make_task(alice, title="Plain title")
        page = await task_service.list_tasks(session, _actor(alice), TaskFilters(search="%"))
        assert page.tasks == []

    async def test_equality_filters(self, session, make_user, make_task):
        alice, bob = await make_user("Alice"), await make_user("Bob")
        match = await make_task(alice, bob, priority="high", status="in-progress")
        await make_task(alice, bob, priority="low", status="in-progress")
        await make_task(alice, priority="high", status="in-progress")

        page = await task_service.list_tasks(
            session,
            _actor(alice),
            TaskFilters(
                priority=TaskPriority.HIGH,
                status=TaskStatus.IN_PROGRESS,
                assigned_user_id=bob.id,
            ),
        )
        assert [t.id for t in page.tasks] == [match.id]

    async def test_newest_first_and_pagination(self, session, make_user, make_task):
        alice = await make_user("Alice")
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        created = [
            await make_task(alice, title=f"Task number {i}", created_at=base + timedelta(minutes=i))
            for i in range(5)
        ]

        first = await task_service.list_tasks(session, _actor(alice), TaskFilters(page=1, page_size=2))
        assert [t.id for t in first.tasks] == [created[4].id, created[3].id]
        assert first.pagination.total_pages == 3
        assert first.pagination.has_next_page is True
        assert first.pagination.has_prev_page is False

        last = await task_service.list_tasks(session, _actor(alice), TaskFilters(page=3, page_size=2))
        assert [t.id for t in last.tasks] == [created[0].id]
        assert last.pagination.has_next_page is False
        assert last.pagination.has_prev_page is True

    async def test_page_beyond_last_is_empty_with_totals(self, session, make_user, make_task):
        alice = await make_user("Alice")
        for i in range(3):
            await make_task(alice, title=f"Task number {i}")

        page = await task_service.list_tasks(session, _actor(alice), TaskFilters(page=9, page_size=2))
        assert page.tasks == []
        assert page.pagination.total_items == 3
        assert page.pagination.total_pages == 2
        assert page.pagination.current_page == 9
        assert page.pagination.has_next_page is False

    async def test_enrichment_includes_summaries(self, session, make_user, make_task):
        alice = await make_user("Alice", "Archer", email="alice@example.com")
        bob = await make_user("Bob", "Baker", email="bob@example.com")
        await make_task(alice, bob)

        page = await task_service.list_tasks(session, _actor(alice), TaskFilters())
        task = page.tasks[0]
        assert task.creator.first_name == "Alice"
        assert task.creator.email == "alice@example.com"
        assert task.assigned_user.last_name == "Baker"
        assert task.priority_color == "#F59E0B"

    async def test_unassigned_task_has_no_assignee_summary(self, session, make_user, make_task):
        alice = await make_user("Alice")
        await make_task(alice)
        page = await task_service.list_tasks(session, _actor(alice), TaskFilters())
        assert page.tasks[0].assigned_user is None
        assert page.tasks[0].creator is not None


class TestTaskStats:
    async def test_counts_visible_tasks(self, session, make_user, make_task):
        alice, bob = await make_user("Alice"), await make_user("Bob")
        now = datetime.now(timezone.utc)
        await make_task(alice, status="pending", due_date=now - timedelta(days=2))
        await make_task(alice, status="in-progress")
        await make_task(
            alice,
            status="completed",
            completed_at=now,
            due_date=now - timedelta(days=2),
        )
        await make_task(bob, status="pending")

        stats = await task_service.task_stats(session, _actor(alice), now=now)
        assert stats.total == 3
        assert stats.pending == 1
        assert stats.in_progress == 1
        assert stats.completed == 1
        assert stats.overdue == 1

"""
Tests for TaskService - the store facade over task trees.

Tests cover creation with priority inheritance, reads in hierarchical
order, edits, reparenting, priority and status changes, reordering and
cascade deletion.
"""

from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select

from tasktree.database import TaskORM
from tasktree.models import TaskPriority, TaskStatus
from tasktree.services.task_service import (
    InvalidParentError,
    PriorityConstraintError,
    ProjectNotFoundError,
    TaskNotFoundError,
    TaskService,
)


async def _orders(service, parent_id=None, project_id=None):
    if parent_id is not None:
        return [t.sort_order for t in await service.get_children(parent_id)]
    return [t.sort_order for t in await service.get_tasks_for_project(project_id)]


class TestTaskServiceCreate:
    """Tests for task creation."""

    @pytest.mark.asyncio
    async def test_create_task_basic(self, db_session, sample_project, sample_project_id):
        """Test creating a basic top-level task."""
        service = TaskService(db_session)

        task = await service.create_task(
            title="Design landing page",
            project_id=sample_project_id,
            description="Hero section first",
            due_date=date(2026, 11, 1),
        )

        assert task.title == "Design landing page"
        assert task.description == "Hero section first"
        assert task.project_id == sample_project_id
        assert task.parent_id is None
        assert task.depth == 0
        assert task.path == str(task.id)
        assert task.sort_order == 1
        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.MEDIUM
        assert task.due_date == date(2026, 11, 1)

    @pytest.mark.asyncio
    async def test_sort_order_appends(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)

        first = await service.create_task("Task 1", sample_project_id)
        second = await service.create_task("Task 2", sample_project_id)
        third = await service.create_task("Task 3", sample_project_id)

        assert (first.sort_order, second.sort_order, third.sort_order) == (1, 2, 3)

    @pytest.mark.asyncio
    async def test_default_priority_from_settings(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session, default_priority="low")

        task = await service.create_task("Task", sample_project_id)

        assert task.priority == TaskPriority.LOW

    @pytest.mark.asyncio
    async def test_unknown_project(self, db_session, sample_project):
        service = TaskService(db_session)

        with pytest.raises(ProjectNotFoundError):
            await service.create_task("Orphan", uuid4())

    @pytest.mark.asyncio
    async def test_unknown_parent(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)

        with pytest.raises(TaskNotFoundError):
            await service.create_task("Orphan", sample_project_id, parent_id=uuid4())

    @pytest.mark.asyncio
    async def test_parent_from_other_project(
        self, db_session, sample_project, other_project, sample_project_id, other_project_id
    ):
        service = TaskService(db_session)
        foreign = await service.create_task("Foreign", other_project_id)

        with pytest.raises(InvalidParentError):
            await service.create_task("Child", sample_project_id, parent_id=foreign.id)


class TestTaskServiceCreateChild:
    """Tests for subtask creation."""

    @pytest.mark.asyncio
    async def test_child_depth_and_path(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id)

        child = await service.create_child_task(parent.id, "Child")
        grandchild = await service.create_child_task(child.id, "Grandchild")

        assert child.depth == 1
        assert child.parent_id == parent.id
        assert child.project_id == sample_project_id
        assert grandchild.depth == 2
        assert grandchild.path == f"{parent.id}/{child.id}/{grandchild.id}"

    @pytest.mark.asyncio
    async def test_child_inherits_parent_priority(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id, priority="high")

        child = await service.create_child_task(parent.id, "Child")

        assert child.priority == TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_child_may_be_higher_than_parent(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id, priority="low")

        child = await service.create_child_task(parent.id, "Child", priority="high")

        assert child.priority == TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_child_below_parent_rejected(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id, priority="high")

        with pytest.raises(PriorityConstraintError) as exc_info:
            await service.create_child_task(parent.id, "Child", priority="medium")

        validation = exc_info.value.validation
        assert validation.minimum_allowed_priority == TaskPriority.HIGH
        assert "cannot have lower priority" in str(exc_info.value)
        assert await service.get_children(parent.id) == []

    @pytest.mark.asyncio
    async def test_new_child_reopens_completed_parent(self, db_session, sample_project, sample_project_id):
        """Test adding a pending subtask re-derives the parent's status."""
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id)
        child = await service.create_child_task(parent.id, "Child")
        await service.update_status(child.id, "completed")

        await service.create_child_task(parent.id, "Another child")

        reloaded = await service.get_task_by_id(parent.id)
        assert reloaded.status == TaskStatus.IN_PROGRESS


class TestTaskServiceRead:
    """Tests for read operations."""

    @pytest.mark.asyncio
    async def test_get_task_by_id_missing(self, db_session, sample_project):
        service = TaskService(db_session)

        assert await service.get_task_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_tasks_for_project_top_level(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        await service.create_child_task(a.id, "A1")
        b = await service.create_task("B", sample_project_id)

        tasks = await service.get_tasks_for_project(sample_project_id)

        assert [t.id for t in tasks] == [a.id, b.id]
        assert tasks[0].child_count == 1
        assert not tasks[0].is_leaf
        assert tasks[1].is_leaf

    @pytest.mark.asyncio
    async def test_project_tree_order(self, db_session, sample_project, sample_project_id):
        """Test the full listing is depth-first with siblings by sort_order."""
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        b = await service.create_task("B", sample_project_id)
        b1 = await service.create_child_task(b.id, "B1")
        a1 = await service.create_child_task(a.id, "A1")
        a1x = await service.create_child_task(a1.id, "A1x")

        tree = await service.get_project_tree(sample_project_id)

        assert [t.title for t in tree] == ["A", "A1", "A1x", "B", "B1"]
        assert [t.id for t in tree] == [a.id, a1.id, a1x.id, b.id, b1.id]

    @pytest.mark.asyncio
    async def test_get_all_descendants(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        a1 = await service.create_child_task(a.id, "A1")
        a2 = await service.create_child_task(a.id, "A2")
        a1x = await service.create_child_task(a1.id, "A1x")

        descendants = await service.get_all_descendants(a.id)

        assert [t.id for t in descendants] == [a1.id, a1x.id, a2.id]

    @pytest.mark.asyncio
    async def test_completion_percentage(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id)
        c1 = await service.create_child_task(parent.id, "C1")
        await service.create_child_task(parent.id, "C2")
        await service.create_child_task(parent.id, "C3")
        await service.update_status(c1.id, "completed")

        reloaded = await service.get_task_by_id(parent.id)

        assert reloaded.completion_percentage == 33.33

    @pytest.mark.asyncio
    async def test_get_children_missing_parent(self, db_session, sample_project):
        service = TaskService(db_session)

        with pytest.raises(TaskNotFoundError):
            await service.get_children(uuid4())


class TestTaskServiceUpdate:
    """Tests for plain property edits."""

    @pytest.mark.asyncio
    async def test_update_fields(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Old", sample_project_id)

        updated = await service.update_task(
            task.id, title="New", description="Details", due_date=date(2026, 12, 24)
        )

        assert updated.title == "New"
        assert updated.description == "Details"
        assert updated.due_date == date(2026, 12, 24)
        assert updated.updated_at >= task.updated_at

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id)

        with pytest.raises(ValueError):
            await service.update_task(task.id)

    @pytest.mark.asyncio
    async def test_update_rejects_empty_title(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id)

        with pytest.raises(ValueError):
            await service.update_task(task.id, title="")

    @pytest.mark.asyncio
    async def test_update_missing_task(self, db_session, sample_project):
        service = TaskService(db_session)

        with pytest.raises(TaskNotFoundError):
            await service.update_task(uuid4(), title="Nope")


class TestTaskServicePriority:
    """Tests for explicit priority changes."""

    @pytest.mark.asyncio
    async def test_set_priority(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id, priority="low")

        result = await service.set_priority(task.id, "high")

        assert result.success
        assert result.old_priority == TaskPriority.LOW
        assert result.priority == TaskPriority.HIGH
        assert (await service.get_task_by_id(task.id)).priority == TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_set_priority_below_parent(self, db_session, sample_project, sample_project_id):
        """Test a subtask under a high parent cannot become medium."""
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id, priority="high")
        child = await service.create_child_task(parent.id, "Child")

        result = await service.set_priority(child.id, "medium")

        assert not result.success
        assert result.error == "below_parent_priority"
        assert result.priority == TaskPriority.HIGH
        assert not result.validation.valid
        assert result.validation.minimum_allowed_priority == TaskPriority.HIGH
        assert (await service.get_task_by_id(child.id)).priority == TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_raising_parent_above_children_rejected(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id, priority="low")
        await service.create_child_task(parent.id, "Child", priority="low")

        result = await service.set_priority(parent.id, "high")

        assert not result.success
        assert result.error == "children_below_priority"
        assert (await service.get_task_by_id(parent.id)).priority == TaskPriority.LOW

    @pytest.mark.asyncio
    async def test_set_same_priority(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id, priority="medium")

        result = await service.set_priority(task.id, TaskPriority.MEDIUM)

        assert result.success
        assert result.old_priority is None

    @pytest.mark.asyncio
    async def test_set_unknown_priority(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id)

        with pytest.raises(ValueError):
            await service.set_priority(task.id, "urgent")


class TestTaskServiceStatus:
    """Tests for status changes through the service."""

    @pytest.mark.asyncio
    async def test_update_status_rolls_up(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id)
        a = await service.create_child_task(parent.id, "A")
        b = await service.create_child_task(parent.id, "B")

        first = await service.update_status(a.id, TaskStatus.COMPLETED)

        assert first.success
        assert first.updated_ancestor_ids == [parent.id]
        assert (await service.get_task_by_id(parent.id)).status == TaskStatus.IN_PROGRESS

        await service.update_status(b.id, "completed")

        assert (await service.get_task_by_id(parent.id)).status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_direct_completion_of_parent(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id)
        await service.create_child_task(parent.id, "Child")

        result = await service.update_status(parent.id, "completed")

        assert not result.success
        assert result.error == "direct_completion_of_parent"
        assert result.status == TaskStatus.PENDING


class TestTaskServiceReorder:
    """Tests for reordering through the service."""

    @pytest.mark.asyncio
    async def test_reorder_scenario(self, db_session, sample_project, sample_project_id):
        """Test [low, high, high]: moving low to 3 needs confirmation, then becomes high."""
        service = TaskService(db_session)
        low = await service.create_task("Low", sample_project_id, priority="low")
        h1 = await service.create_task("High 1", sample_project_id, priority="high")
        h2 = await service.create_task("High 2", sample_project_id, priority="high")

        pending = await service.reorder_task(low.id, 3, context="top-level")
        assert pending.requires_confirmation
        assert pending.type == "moving_to_higher_priority"
        assert await _orders(service, project_id=sample_project_id) == [1, 2, 3]

        done = await service.reorder_task(low.id, 3, confirmed=True, context="top-level")
        assert done.success
        assert done.priority_changed

        tasks = await service.get_tasks_for_project(sample_project_id)
        assert [t.id for t in tasks] == [h1.id, h2.id, low.id]
        assert [t.sort_order for t in tasks] == [1, 2, 3]
        assert tasks[2].priority == TaskPriority.HIGH
        assert tasks[2].move_count == 1

    @pytest.mark.asyncio
    async def test_reorder_missing_task(self, db_session, sample_project):
        service = TaskService(db_session)

        with pytest.raises(TaskNotFoundError):
            await service.reorder_task(uuid4(), 1)


class TestTaskServiceMove:
    """Tests for reparenting."""

    @pytest.mark.asyncio
    async def test_move_under_new_parent(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        b = await service.create_task("B", sample_project_id)
        a1 = await service.create_child_task(a.id, "A1")
        a2 = await service.create_child_task(a.id, "A2")
        a1x = await service.create_child_task(a1.id, "A1x")
        b1 = await service.create_child_task(b.id, "B1")

        moved = await service.move_task(a1.id, new_parent_id=b.id)

        assert moved.parent_id == b.id
        assert moved.depth == 1
        assert moved.sort_order == 2
        assert moved.path == f"{b.id}/{a1.id}"
        grandchild = await service.get_task_by_id(a1x.id)
        assert grandchild.depth == 2
        assert grandchild.path == f"{b.id}/{a1.id}/{a1x.id}"
        assert [t.id for t in await service.get_children(a.id)] == [a2.id]
        assert await _orders(service, parent_id=a.id) == [1]
        assert [t.id for t in await service.get_children(b.id)] == [b1.id, a1.id]

    @pytest.mark.asyncio
    async def test_move_to_top_level(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        a1 = await service.create_child_task(a.id, "A1")

        moved = await service.move_task(a1.id, new_parent_id=None)

        assert moved.parent_id is None
        assert moved.depth == 0
        assert moved.sort_order == 2
        assert moved.path == str(a1.id)

    @pytest.mark.asyncio
    async def test_move_under_descendant_rejected(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        a1 = await service.create_child_task(a.id, "A1")

        with pytest.raises(InvalidParentError):
            await service.move_task(a.id, new_parent_id=a1.id)
        with pytest.raises(InvalidParentError):
            await service.move_task(a.id, new_parent_id=a.id)

    @pytest.mark.asyncio
    async def test_move_across_projects_rejected(
        self, db_session, sample_project, other_project, sample_project_id, other_project_id
    ):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id)
        foreign = await service.create_task("Foreign", other_project_id)

        with pytest.raises(InvalidParentError):
            await service.move_task(task.id, new_parent_id=foreign.id)

    @pytest.mark.asyncio
    async def test_move_below_parent_priority_rejected(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        urgent = await service.create_task("Urgent", sample_project_id, priority="high")
        relaxed = await service.create_task("Relaxed", sample_project_id, priority="low")

        with pytest.raises(PriorityConstraintError):
            await service.move_task(relaxed.id, new_parent_id=urgent.id)

        reloaded = await service.get_task_by_id(relaxed.id)
        assert reloaded.parent_id is None
        assert reloaded.priority == TaskPriority.LOW

    @pytest.mark.asyncio
    async def test_move_with_replacement_priority(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        urgent = await service.create_task("Urgent", sample_project_id, priority="high")
        relaxed = await service.create_task("Relaxed", sample_project_id, priority="low")

        moved = await service.move_task(relaxed.id, new_parent_id=urgent.id, priority="high")

        assert moved.parent_id == urgent.id
        assert moved.priority == TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_move_recomputes_both_parents(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        b = await service.create_task("B", sample_project_id)
        done = await service.create_child_task(a.id, "Done")
        await service.create_child_task(a.id, "Open")
        b1 = await service.create_child_task(b.id, "B1")
        await service.update_status(done.id, "completed")
        await service.update_status(b1.id, "completed")

        await service.move_task(done.id, new_parent_id=b.id)

        assert (await service.get_task_by_id(a.id)).status == TaskStatus.PENDING
        assert (await service.get_task_by_id(b.id)).status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_move_missing_parent(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        task = await service.create_task("Task", sample_project_id)

        with pytest.raises(TaskNotFoundError):
            await service.move_task(task.id, new_parent_id=uuid4())


class TestTaskServiceDelete:
    """Tests for cascade deletion."""

    @pytest.mark.asyncio
    async def test_cascade_delete(self, db_session, sample_project, sample_project_id):
        """Test deleting P removes C and G as well."""
        service = TaskService(db_session)
        p = await service.create_task("P", sample_project_id)
        c = await service.create_child_task(p.id, "C")
        g = await service.create_child_task(c.id, "G")

        deleted = await service.delete_task(p.id)

        assert deleted == 3
        for task_id in (p.id, c.id, g.id):
            assert await service.get_task_by_id(task_id) is None
        result = await db_session.execute(select(TaskORM))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_delete_compacts_siblings(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        b = await service.create_task("B", sample_project_id)
        c = await service.create_task("C", sample_project_id)

        await service.delete_task(b.id)

        tasks = await service.get_tasks_for_project(sample_project_id)
        assert [t.id for t in tasks] == [a.id, c.id]
        assert [t.sort_order for t in tasks] == [1, 2]

    @pytest.mark.asyncio
    async def test_delete_recomputes_parent_status(self, db_session, sample_project, sample_project_id):
        """Test removing the last open subtask completes the parent."""
        service = TaskService(db_session)
        parent = await service.create_task("Parent", sample_project_id)
        done = await service.create_child_task(parent.id, "Done")
        open_task = await service.create_child_task(parent.id, "Open")
        await service.update_status(done.id, "completed")

        await service.delete_task(open_task.id)

        assert (await service.get_task_by_id(parent.id)).status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_delete_missing_task(self, db_session, sample_project):
        service = TaskService(db_session)

        with pytest.raises(TaskNotFoundError):
            await service.delete_task(uuid4())


class TestTaskServiceMaintenance:
    """Tests for hierarchy rebuild and ordering initialization."""

    @pytest.mark.asyncio
    async def test_rebuild_hierarchy(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id)
        a1 = await service.create_child_task(a.id, "A1")
        row = await db_session.get(TaskORM, str(a1.id))
        row.path = None
        row.depth = 5

        count = await service.rebuild_hierarchy(sample_project_id)

        assert count == 2
        assert row.depth == 1
        assert row.path == f"{a.id}/{a1.id}"

    @pytest.mark.asyncio
    async def test_initialize_ordering(self, db_session, sample_project, sample_project_id, add_task):
        service = TaskService(db_session)
        a = await add_task("A", sort_order=4)
        b = await add_task("B", sort_order=10)
        child = await add_task("Child", parent=a, sort_order=3)

        count = await service.initialize_ordering(sample_project_id)

        assert count == 3
        assert (a.sort_order, b.sort_order, child.sort_order) == (1, 2, 1)
        assert a.initial_order_index == 1
        assert a.current_order_index == 1
        assert a.move_count == 0

    @pytest.mark.asyncio
    async def test_maintenance_unknown_project(self, db_session, sample_project):
        service = TaskService(db_session)

        with pytest.raises(ProjectNotFoundError):
            await service.rebuild_hierarchy(uuid4())
        with pytest.raises(ProjectNotFoundError):
            await service.initialize_ordering(uuid4())


async def _assert_priorities_monotonic(service, project_id):
    tasks = await service.get_project_tree(project_id)
    by_id = {task.id: task for task in tasks}
    for task in tasks:
        if task.parent_id is not None:
            parent = by_id[task.parent_id]
            assert task.priority_level >= parent.priority_level, (
                f"{task.title} ({task.priority.value}) is below "
                f"its parent {parent.title} ({parent.priority.value})"
            )


class TestPriorityMonotonicity:
    """Tests that no subtask ends up below its parent, whatever the operation."""

    @pytest.mark.asyncio
    async def test_monotonic_after_every_operation(self, db_session, sample_project, sample_project_id):
        service = TaskService(db_session)
        a = await service.create_task("A", sample_project_id, priority="low")
        a1 = await service.create_child_task(a.id, "A1")
        a1x = await service.create_child_task(a1.id, "A1x")
        b = await service.create_task("B", sample_project_id, priority="high")
        b1 = await service.create_child_task(b.id, "B1")
        await service.create_child_task(b1.id, "B1x")
        c = await service.create_task("C", sample_project_id, priority="medium")
        d = await service.create_task("D", sample_project_id, priority="medium")
        await service.create_child_task(d.id, "D1")
        await _assert_priorities_monotonic(service, sample_project_id)

        # A next to high and medium neighbors stays capped by its low subtask
        result = await service.reorder_task(a.id, 2, confirmed=True, context="top-level")
        assert result.success
        assert not result.priority_changed
        await _assert_priorities_monotonic(service, sample_project_id)

        # D to the front: high neighbor, capped by its medium subtask
        await service.reorder_task(d.id, 1, confirmed=True, context="top-level")
        assert (await service.get_task_by_id(d.id)).priority == TaskPriority.MEDIUM
        await _assert_priorities_monotonic(service, sample_project_id)

        # C (a leaf) between D and B rises to high
        result = await service.reorder_task(c.id, 2, confirmed=True, context="top-level")
        assert result.new_priority == TaskPriority.HIGH
        await _assert_priorities_monotonic(service, sample_project_id)

        # B to the end next to low A drops to low above its high subtasks
        result = await service.reorder_task(b.id, 4, confirmed=True, context="top-level")
        assert result.new_priority == TaskPriority.LOW
        await _assert_priorities_monotonic(service, sample_project_id)

        await service.move_task(c.id, new_parent_id=d.id)
        await _assert_priorities_monotonic(service, sample_project_id)

        rejected = await service.set_priority(a.id, "high")
        assert not rejected.success
        assert rejected.error == "children_below_priority"
        assert (await service.set_priority(a1x.id, "medium")).success
        await _assert_priorities_monotonic(service, sample_project_id)

        # C back in front of D1 within D's subtasks drops to medium
        result = await service.reorder_task(c.id, 1, confirmed=True, context="subtasks")
        assert result.new_priority == TaskPriority.MEDIUM
        await _assert_priorities_monotonic(service, sample_project_id)

        deep = await service.create_child_task(a1x.id, "Deep")
        assert deep.priority == TaskPriority.MEDIUM
        await _assert_priorities_monotonic(service, sample_project_id)

"""
Reorder engine for tasktree.

Moves a task to a new position among its siblings. A reorder is split in
two phases:

- plan_reorder() reads the sibling set and works out everything the move
  would do (new order, neighbor priorities, resolved priority) and whether
  it can go ahead at all. It never writes.
- apply_reorder() re-reads the sibling set, checks nothing changed since
  the plan was made, and writes the new sort orders, priority and move
  bookkeeping in one flush.

A move whose neighbors would change the task's priority needs confirmation:
without it the plan ends in a ReorderConfirmationRequired result and
nothing is written.
"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktree.database import TaskORM
from tasktree.logging_config import get_logger
from tasktree.models import ReorderContext, TaskPriority
from tasktree.results import (
    ReorderConfirmation,
    ReorderConfirmationRequired,
    ReorderFailure,
    ReorderResult,
    ReorderSuccess,
)
from tasktree.services.errors import ReorderConflictError
from tasktree.services.hierarchy import HierarchyService, sort_tasks_hierarchically
from tasktree.services.priority_rules import (
    cap_to_children,
    clamp_to_parent,
    resolve_neighbor_priority,
)
from tasktree.utils.datetime_utils import utcnow

logger = get_logger(__name__)

OUTSIDE_PARENT_CONTEXT_MESSAGE = (
    "Subtasks cannot be moved outside their parent task context. "
    "Use the edit form to change the parent."
)
TOP_LEVEL_IN_SUBTASKS_MESSAGE = "Top-level tasks cannot be reordered within a subtask list."

SiblingKey = Tuple[str, Optional[str]]


class SiblingLockRegistry:
    """
    One asyncio lock per sibling set (project id, parent id).

    Reorders and reparents hold the lock of every sibling set they rewrite,
    so two operations on the same set never interleave within a process.
    A lock is dropped once no caller holds or waits for it, so the registry
    only tracks sibling sets with work in flight.
    """

    def __init__(self) -> None:
        self._locks: Dict[SiblingKey, asyncio.Lock] = {}
        self._users: Dict[SiblingKey, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @staticmethod
    def _key(project_id: str, parent_id: Optional[str]) -> SiblingKey:
        return (str(project_id), str(parent_id) if parent_id is not None else None)

    def lock_for(self, project_id: str, parent_id: Optional[str]) -> asyncio.Lock:
        """Get (creating on first use) the lock of a sibling set."""
        key = self._key(project_id, parent_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _release_user(self, key: SiblingKey) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            self._locks.pop(key, None)

    @asynccontextmanager
    async def acquire(self, *keys: SiblingKey) -> AsyncIterator[None]:
        """
        Hold the locks of several sibling sets at once.

        Locks are taken in a fixed order so concurrent callers asking for
        the same sets cannot deadlock.

        Example:
            async with registry.acquire((project_id, old_parent), (project_id, new_parent)):
                ...
        """
        unique = sorted(
            {self._key(project_id, parent_id) for project_id, parent_id in keys},
            key=lambda key: (key[0], key[1] or "")
        )
        # Registered before waiting so a lock is never dropped while someone queues on it
        for key in unique:
            self._users[key] = self._users.get(key, 0) + 1
        try:
            async with AsyncExitStack() as stack:
                for project_id, parent_id in unique:
                    await stack.enter_async_context(self.lock_for(project_id, parent_id))
                yield
        finally:
            for key in unique:
                self._release_user(key)


# Global lock registry instance
_lock_registry: Optional[SiblingLockRegistry] = None


def get_lock_registry() -> SiblingLockRegistry:
    """
    Get or create the process-wide sibling lock registry.

    Returns:
        SiblingLockRegistry instance
    """
    global _lock_registry
    if _lock_registry is None:
        _lock_registry = SiblingLockRegistry()
    return _lock_registry


class ReorderPlan(BaseModel):
    """
    Everything a reorder would do, computed without touching the store.

    ``outcome`` is set when the request ends without a write (rejected, or
    waiting for confirmation). Otherwise apply_reorder() carries it out.
    """

    task_id: str
    project_id: str
    parent_id: Optional[str] = None
    context: ReorderContext
    requested_position: int
    confirmed: bool = False

    old_position: int = 0
    new_position: int = 0
    sibling_snapshot: List[Tuple[str, int]] = Field(default_factory=list)
    new_order: List[str] = Field(default_factory=list)

    current_priority: TaskPriority
    neighbor_priorities: List[TaskPriority] = Field(default_factory=list)
    resolved_priority: TaskPriority

    outcome: Optional[Union[ReorderConfirmationRequired, ReorderFailure]] = None

    @property
    def is_noop(self) -> bool:
        """True when the task is already at the requested position."""
        return self.old_position == self.new_position

    @property
    def priority_changes(self) -> bool:
        """True when applying the plan would change the task's priority."""
        return not self.is_noop and self.resolved_priority != self.current_priority

    @property
    def requires_confirmation(self) -> bool:
        return isinstance(self.outcome, ReorderConfirmationRequired)


class ReorderService:
    """
    Moves tasks among their siblings with priority adjustment.

    Works on TaskORM rows inside the caller's session.
    """

    def __init__(
        self,
        session: AsyncSession,
        hierarchy: Optional[HierarchyService] = None,
        lock_registry: Optional[SiblingLockRegistry] = None
    ) -> None:
        """
        Initialize reorder service with database session.

        Args:
            session: Active async database session
            hierarchy: Hierarchy service bound to the same session
            lock_registry: Lock registry to serialize sibling rewrites
                (default: process-wide registry)
        """
        self.session = session
        self.hierarchy = hierarchy or HierarchyService(session)
        self.lock_registry = lock_registry or get_lock_registry()

    # ==============================================================================
    # BOOKKEEPING
    # ==============================================================================

    @staticmethod
    def initialize_order_tracking(task: TaskORM) -> bool:
        """
        Fill in move bookkeeping the first time a task is touched.

        initial_order_index and current_order_index start at the task's
        sort_order and move_count at 0. Existing values are left alone.

        Returns:
            True if anything was initialized
        """
        changed = False
        if task.initial_order_index is None:
            task.initial_order_index = task.sort_order
            changed = True
        if task.current_order_index is None:
            task.current_order_index = task.sort_order
            changed = True
        if task.move_count is None:
            task.move_count = 0
            changed = True
        return changed

    # ==============================================================================
    # PLAN
    # ==============================================================================

    async def plan_reorder(
        self,
        task: TaskORM,
        new_position: int,
        confirmed: bool = False,
        context: Union[ReorderContext, str] = ReorderContext.ALL
    ) -> ReorderPlan:
        """
        Work out what moving task to new_position would do.

        Args:
            task: Task to move
            new_position: 1-based target position in the listing named by context
            confirmed: Whether the caller accepts a priority change
            context: Listing the position refers to (top-level, subtasks, all)

        Returns:
            ReorderPlan; plan.outcome is set when the move cannot be applied

        Raises:
            HierarchyIntegrityError: If the task's parent chain is corrupt
        """
        context = ReorderContext(context)
        current_priority = TaskPriority(task.priority)
        sibling_set = await self.hierarchy.get_sibling_set(task.project_id, task.parent_id)

        plan = ReorderPlan(
            task_id=task.id,
            project_id=task.project_id,
            parent_id=task.parent_id,
            context=context,
            requested_position=new_position,
            confirmed=confirmed,
            sibling_snapshot=[(sibling.id, sibling.sort_order) for sibling in sibling_set],
            current_priority=current_priority,
            resolved_priority=current_priority,
        )

        ids = [sibling.id for sibling in sibling_set]
        plan.old_position = ids.index(task.id) + 1

        position = await self._resolve_sibling_position(task, new_position, context, sibling_set, plan)
        if plan.outcome is not None:
            return plan

        if position < 1 or position > len(sibling_set):
            plan.outcome = ReorderFailure(
                task_id=task.id,
                error="position_out_of_range",
                attempted_position=new_position,
                min_position=1,
                max_position=len(sibling_set),
                message=(
                    f"Position {new_position} is out of range. "
                    f"Valid positions are 1 to {len(sibling_set)}."
                ),
            )
            return plan

        plan.new_position = position
        if plan.is_noop:
            plan.new_order = ids
            return plan

        remaining = [sibling for sibling in sibling_set if sibling.id != task.id]
        insert_at = position - 1
        neighbors = []
        if insert_at > 0:
            neighbors.append(remaining[insert_at - 1])
        if insert_at < len(remaining):
            neighbors.append(remaining[insert_at])

        plan.new_order = (
            [s.id for s in remaining[:insert_at]] + [task.id] + [s.id for s in remaining[insert_at:]]
        )
        plan.neighbor_priorities = [TaskPriority(neighbor.priority) for neighbor in neighbors]

        suggested = resolve_neighbor_priority(current_priority, plan.neighbor_priorities)
        parent = await self.hierarchy.get_parent(task)
        children = await self.hierarchy.get_children(task)
        # Parent is the floor, the lowest subtask the ceiling
        plan.resolved_priority = cap_to_children(
            clamp_to_parent(suggested, parent.priority if parent else None),
            [child.priority for child in children]
        )

        if plan.priority_changes and not confirmed:
            moving_up = plan.resolved_priority.level > current_priority.level
            message = (
                f"Moving this task will change its priority from "
                f"{current_priority.value} to {plan.resolved_priority.value}. "
                f"Confirm to continue."
            )
            plan.outcome = ReorderConfirmationRequired(
                task_id=task.id,
                confirmation=ReorderConfirmation(
                    type="moving_to_higher_priority" if moving_up else "moving_to_lower_priority",
                    task_priority=current_priority,
                    neighbor_priorities=plan.neighbor_priorities,
                    suggested_priority=plan.resolved_priority,
                    message=message,
                ),
                message=message,
            )

        return plan

    async def _resolve_sibling_position(
        self,
        task: TaskORM,
        new_position: int,
        context: ReorderContext,
        sibling_set: List[TaskORM],
        plan: ReorderPlan
    ) -> int:
        """
        Translate a listing position into a position within the sibling set.

        Sets plan.outcome when the position points outside the task's own
        sibling group.
        """
        if context == ReorderContext.TOP_LEVEL:
            if task.parent_id is not None:
                plan.outcome = self._context_failure(task, new_position, OUTSIDE_PARENT_CONTEXT_MESSAGE)
            return new_position

        if context == ReorderContext.SUBTASKS:
            if task.parent_id is None:
                plan.outcome = self._context_failure(task, new_position, TOP_LEVEL_IN_SUBTASKS_MESSAGE)
            return new_position

        # ALL: the position indexes the project's hierarchical listing
        result = await self.session.execute(
            select(TaskORM).where(TaskORM.project_id == task.project_id)
        )
        project_tasks = list(result.scalars().all())
        listing = sort_tasks_hierarchically(project_tasks)

        if new_position < 1 or new_position > len(listing):
            plan.outcome = ReorderFailure(
                task_id=task.id,
                error="position_out_of_range",
                attempted_position=new_position,
                min_position=1,
                max_position=len(listing),
                message=(
                    f"Position {new_position} is out of range. "
                    f"Valid positions are 1 to {len(listing)}."
                ),
            )
            return new_position

        sibling_ids = [sibling.id for sibling in sibling_set]
        target = listing[new_position - 1]

        if target.parent_id == task.parent_id:
            return sibling_ids.index(target.id) + 1

        if task.parent_id is None:
            # A slot inside some top-level task's subtree maps to that top-level task
            by_id = {t.id: t for t in project_tasks}
            root = target
            seen = {root.id}
            while root.parent_id is not None and root.parent_id in by_id:
                root = by_id[root.parent_id]
                if root.id in seen:
                    break
                seen.add(root.id)
            if root.id in sibling_ids:
                return sibling_ids.index(root.id) + 1

        plan.outcome = self._context_failure(task, new_position, OUTSIDE_PARENT_CONTEXT_MESSAGE)
        return new_position

    @staticmethod
    def _context_failure(task: TaskORM, new_position: int, message: str) -> ReorderFailure:
        return ReorderFailure(
            task_id=task.id,
            error="outside_parent_context",
            attempted_position=new_position,
            message=message,
        )

    # ==============================================================================
    # APPLY
    # ==============================================================================

    async def apply_reorder(self, plan: ReorderPlan) -> ReorderResult:
        """
        Carry out a reorder plan.

        Plans ending in a rejection or a confirmation request are returned
        unchanged. Otherwise the sibling set is re-read and compared to the
        plan's snapshot, sort orders are renumbered 1..N, the task's
        priority and move bookkeeping are updated, and everything is flushed
        together.

        Args:
            plan: Plan produced by plan_reorder()

        Returns:
            ReorderResult

        Raises:
            ReorderConflictError: If the sibling set changed since planning
        """
        if plan.outcome is not None:
            return plan.outcome

        sibling_set = await self.hierarchy.get_sibling_set(plan.project_id, plan.parent_id)
        current_snapshot = [(sibling.id, sibling.sort_order) for sibling in sibling_set]
        if current_snapshot != plan.sibling_snapshot:
            logger.warning(
                f"Reorder conflict for task {plan.task_id}: siblings changed since planning"
            )
            raise ReorderConflictError(
                f"Siblings of task {plan.task_id} changed while reordering; retry from a fresh read"
            )

        rows = {sibling.id: sibling for sibling in sibling_set}
        task = rows[plan.task_id]

        try:
            self.initialize_order_tracking(task)

            if plan.is_noop:
                await self.session.flush()
                return ReorderSuccess(
                    task_id=task.id,
                    old_position=plan.old_position,
                    new_position=plan.new_position,
                    move_count=task.move_count,
                    message="Task is already at this position.",
                )

            for index, sibling_id in enumerate(plan.new_order, start=1):
                sibling = rows[sibling_id]
                if sibling.sort_order != index:
                    sibling.sort_order = index

            old_priority = None
            new_priority = None
            if plan.priority_changes:
                old_priority = plan.current_priority
                new_priority = plan.resolved_priority
                task.priority = new_priority.value

            now = utcnow()
            task.current_order_index = plan.new_position
            task.move_count += 1
            task.last_moved_at = now
            task.updated_at = now

            await self.session.flush()
        except Exception as e:
            logger.error(f"Failed to apply reorder for task {plan.task_id}, rolling back: {e}", exc_info=True)
            await self.session.rollback()
            raise

        message = "Task reordered successfully."
        if old_priority is not None:
            message = (
                f"Task reordered successfully. "
                f"Priority changed from {old_priority.value} to {new_priority.value}."
            )

        logger.info(
            f"Reordered task: id={task.id}, {plan.old_position} -> {plan.new_position}, "
            f"priority_changed={old_priority is not None}, move_count={task.move_count}"
        )
        return ReorderSuccess(
            task_id=task.id,
            old_position=plan.old_position,
            new_position=plan.new_position,
            priority_changed=old_priority is not None,
            old_priority=old_priority,
            new_priority=new_priority,
            move_count=task.move_count,
            message=message,
        )

    # ==============================================================================
    # PUBLIC ENTRY POINT
    # ==============================================================================

    async def reorder_to(
        self,
        task: TaskORM,
        new_position: int,
        confirmed: bool = False,
        context: Union[ReorderContext, str] = ReorderContext.ALL
    ) -> ReorderResult:
        """
        Move a task to a new position among its siblings.

        Holds the sibling set's lock from planning until the write is
        flushed.

        Args:
            task: Task to move
            new_position: 1-based target position in the listing named by context
            confirmed: Whether the caller accepts a priority change
            context: Listing the position refers to (top-level, subtasks, all)

        Returns:
            ReorderSuccess, ReorderConfirmationRequired or ReorderFailure
        """
        logger.debug(
            f"Reorder requested: task={task.id}, position={new_position}, "
            f"confirmed={confirmed}, context={context}"
        )
        async with self.lock_registry.acquire((task.project_id, task.parent_id)):
            plan = await self.plan_reorder(task, new_position, confirmed, context)
            result = await self.apply_reorder(plan)

        if not result.success:
            logger.info(f"Reorder not applied for task {task.id}: {result.message}")
        return result

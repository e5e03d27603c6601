"""
Status rollup for tasktree.

Leaf statuses are set directly; the status of every task with children is
derived from its direct children and recomputed from scratch each time, so
running the rollup more than once is harmless.
"""

from typing import Iterable, List, Union

from sqlalchemy.ext.asyncio import AsyncSession

from tasktree.database import TaskORM
from tasktree.logging_config import get_logger
from tasktree.models import TaskStatus
from tasktree.services.errors import DirectCompletionOfParentError, HierarchyIntegrityError
from tasktree.services.hierarchy import HierarchyService
from tasktree.utils.datetime_utils import utcnow

logger = get_logger(__name__)


def derive_status(child_statuses: Iterable[Union[TaskStatus, str]]) -> TaskStatus:
    """
    Derive a parent's status from its direct children.

    Rules:
        - all children completed -> completed
        - all children pending -> pending
        - anything else (some in progress, or pending mixed with completed)
          -> in_progress

    Args:
        child_statuses: Statuses of the direct children (must not be empty)

    Returns:
        Derived TaskStatus

    Raises:
        ValueError: If there are no children to derive from
    """
    statuses = {TaskStatus(status) for status in child_statuses}
    if not statuses:
        raise ValueError("Cannot derive a status without children")

    if statuses == {TaskStatus.COMPLETED}:
        return TaskStatus.COMPLETED
    if statuses == {TaskStatus.PENDING}:
        return TaskStatus.PENDING
    return TaskStatus.IN_PROGRESS


class StatusRollupEngine:
    """
    Applies status changes and propagates derived statuses up the tree.

    Runs inside the caller's session so the change and its rollup land in
    the same transaction.
    """

    def __init__(self, session: AsyncSession, hierarchy: HierarchyService) -> None:
        """
        Initialize the rollup engine.

        Args:
            session: Active async database session
            hierarchy: Hierarchy service bound to the same session
        """
        self.session = session
        self.hierarchy = hierarchy

    async def update_status(self, task: TaskORM, new_status: Union[TaskStatus, str]) -> List[TaskORM]:
        """
        Set the status of a task and roll it up through its ancestors.

        Args:
            task: Task to update
            new_status: New status

        Returns:
            Ancestors whose derived status changed, nearest first

        Raises:
            DirectCompletionOfParentError: If task has children and new_status is completed
            ValueError: If new_status is not a known status
        """
        status = TaskStatus(new_status)

        if status == TaskStatus.COMPLETED and not await self.hierarchy.is_leaf(task):
            logger.warning(f"Rejected direct completion of parent task {task.id}")
            raise DirectCompletionOfParentError(
                f"Task {task.id} has subtasks; it is completed by completing all of its subtasks"
            )

        if task.status != status.value:
            task.status = status.value
            task.updated_at = utcnow()
            await self.session.flush()
            logger.info(f"Task status updated: task_id={task.id}, status={status.value}")

        parent = await self.hierarchy.get_parent(task)
        if parent is None:
            return []
        return await self.update_parent_status(parent)

    async def update_parent_status(self, task: TaskORM) -> List[TaskORM]:
        """
        Recompute the status of task from its children, then walk upward.

        Stops at a top-level task or at the first task whose derived status
        did not change. A task without children is left untouched.

        Args:
            task: Task whose status should be derived

        Returns:
            Tasks whose status changed, nearest first
        """
        changed: List[TaskORM] = []
        seen = set()
        current = task

        while current is not None:
            if current.id in seen:
                logger.error(f"Cycle detected while rolling up status from task {task.id}")
                raise HierarchyIntegrityError(f"Cycle detected in parent chain of task {task.id}")
            seen.add(current.id)

            children = await self.hierarchy.get_children(current)
            if not children:
                break

            derived = derive_status(child.status for child in children)
            if current.status == derived.value:
                break

            logger.debug(
                f"Rollup: task={current.id}, {current.status} -> {derived.value}, "
                f"children={len(children)}"
            )
            current.status = derived.value
            current.updated_at = utcnow()
            changed.append(current)

            current = await self.hierarchy.get_parent(current)

        if changed:
            await self.session.flush()
            logger.info(f"Status rollup changed {len(changed)} ancestor(s) starting at task {task.id}")
        return changed

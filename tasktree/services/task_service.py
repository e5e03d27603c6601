"""
Task service for tasktree.

Store facade over the task tree: creation, reads, edits, reparenting,
priority and status changes, reordering and cascade deletion. Every
operation runs inside the caller's session and leaves depth, path, sort
order, priority constraints and derived statuses consistent before it
returns.
"""

from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktree.config import DEFAULT_MAX_TRAVERSAL_DEPTH, DEFAULT_PRIORITY
from tasktree.database import ProjectORM, TaskORM
from tasktree.logging_config import get_logger
from tasktree.models import ReorderContext, Task, TaskPriority, TaskStatus
from tasktree.results import PriorityUpdateResult, ReorderResult, StatusUpdateResult
from tasktree.services.errors import (
    DirectCompletionOfParentError,
    HierarchyIntegrityError,
    InvalidParentError,
    PriorityConstraintError,
    ProjectNotFoundError,
    ReorderConflictError,
    TaskNotFoundError,
    TaskServiceError,
)
from tasktree.services.hierarchy import HierarchyService, build_path, sort_tasks_hierarchically
from tasktree.services.priority_rules import to_priority, validate_parent_priority_constraint
from tasktree.services.reorder_service import ReorderService, SiblingLockRegistry, get_lock_registry
from tasktree.services.status_rollup import StatusRollupEngine
from tasktree.utils.datetime_utils import utcnow

logger = get_logger(__name__)

__all__ = [
    "TaskService",
    "TaskServiceError",
    "TaskNotFoundError",
    "ProjectNotFoundError",
    "InvalidParentError",
    "PriorityConstraintError",
    "DirectCompletionOfParentError",
    "HierarchyIntegrityError",
    "ReorderConflictError",
]

IdLike = Union[UUID, str]


class TaskService:
    """
    Service layer for task operations.

    Wires the hierarchy maintainer, status rollup engine and reorder engine
    to one session and exposes the operations an outer layer calls.
    """

    def __init__(
        self,
        session: AsyncSession,
        lock_registry: Optional[SiblingLockRegistry] = None,
        max_traversal_depth: int = DEFAULT_MAX_TRAVERSAL_DEPTH,
        default_priority: Union[TaskPriority, str] = DEFAULT_PRIORITY
    ) -> None:
        """
        Initialize task service with database session.

        Args:
            session: Active async database session
            lock_registry: Sibling lock registry (default: process-wide registry)
            max_traversal_depth: Upper bound for parent chain walks
            default_priority: Priority of new top-level tasks when none is given
        """
        self.session = session
        self.lock_registry = lock_registry or get_lock_registry()
        self.default_priority = to_priority(default_priority)
        self.hierarchy = HierarchyService(session, max_traversal_depth=max_traversal_depth)
        self.rollup = StatusRollupEngine(session, self.hierarchy)
        self.reorder = ReorderService(session, self.hierarchy, self.lock_registry)

    # ==============================================================================
    # CONVERSION HELPERS
    # ==============================================================================

    @staticmethod
    def _orm_to_pydantic(task_orm: TaskORM) -> Task:
        """
        Convert TaskORM to Pydantic Task model.

        Args:
            task_orm: SQLAlchemy ORM task instance

        Returns:
            Pydantic Task instance
        """
        return Task(
            id=UUID(task_orm.id),
            project_id=UUID(task_orm.project_id),
            parent_id=UUID(task_orm.parent_id) if task_orm.parent_id else None,
            title=task_orm.title,
            description=task_orm.description,
            status=TaskStatus(task_orm.status),
            priority=TaskPriority(task_orm.priority),
            depth=task_orm.depth,
            path=task_orm.path,
            sort_order=task_orm.sort_order,
            initial_order_index=task_orm.initial_order_index,
            current_order_index=task_orm.current_order_index,
            move_count=task_orm.move_count or 0,
            last_moved_at=task_orm.last_moved_at,
            due_date=task_orm.due_date,
            created_at=task_orm.created_at,
            updated_at=task_orm.updated_at,
        )

    @staticmethod
    def _pydantic_to_orm(task: Task) -> TaskORM:
        """
        Convert Pydantic Task to TaskORM model.

        Args:
            task: Pydantic Task instance

        Returns:
            SQLAlchemy ORM task instance
        """
        return TaskORM(
            id=str(task.id),
            project_id=str(task.project_id),
            parent_id=str(task.parent_id) if task.parent_id else None,
            title=task.title,
            description=task.description,
            status=task.status.value,
            priority=task.priority.value,
            depth=task.depth,
            path=task.path,
            sort_order=task.sort_order,
            initial_order_index=task.initial_order_index,
            current_order_index=task.current_order_index,
            move_count=task.move_count,
            last_moved_at=task.last_moved_at,
            due_date=task.due_date,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )

    async def _fetch_task_with_counts(self, task_orm: TaskORM) -> Task:
        """Convert ORM task to Pydantic with hierarchy counts populated."""
        task = self._orm_to_pydantic(task_orm)
        child_count, leaf_count, completed_leaf_count = await self.hierarchy.hierarchy_counts(task_orm)
        task.update_hierarchy_counts(child_count, leaf_count, completed_leaf_count)
        return task

    async def _fetch_tasks_with_counts(self, task_orms: List[TaskORM]) -> List[Task]:
        tasks = []
        for task_orm in task_orms:
            tasks.append(await self._fetch_task_with_counts(task_orm))
        return tasks

    # ==============================================================================
    # VALIDATION HELPERS
    # ==============================================================================

    async def _verify_project_exists(self, project_id: IdLike) -> None:
        """
        Verify that a project exists.

        Raises:
            ProjectNotFoundError: If project does not exist
        """
        project = await self.session.get(ProjectORM, str(project_id))
        if not project:
            raise ProjectNotFoundError(f"Project with id {project_id} not found")

    async def _get_task_or_raise(self, task_id: IdLike) -> TaskORM:
        """
        Get a task by ID or raise an exception.

        Args:
            task_id: ID of the task

        Returns:
            TaskORM instance

        Raises:
            TaskNotFoundError: If task does not exist
        """
        task_orm = await self.session.get(TaskORM, str(task_id))
        if not task_orm:
            raise TaskNotFoundError(f"Task with id {task_id} not found")
        return task_orm

    # ==============================================================================
    # CREATE OPERATIONS
    # ==============================================================================

    async def create_task(
        self,
        title: str,
        project_id: IdLike,
        description: Optional[str] = None,
        parent_id: Optional[IdLike] = None,
        priority: Optional[Union[TaskPriority, str]] = None,
        due_date: Optional[date] = None,
        task_id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> Task:
        """
        Create a new task (top-level or subtask).

        The task is appended at the end of its sibling set. A subtask
        inherits its parent's priority unless one is given, and a given
        priority may not be below the parent's.

        Args:
            title: Task title
            project_id: ID of the owning project
            description: Optional description
            parent_id: Optional parent task ID (for subtasks)
            priority: Optional priority
            due_date: Optional due date
            task_id: Optional ID for the task
            created_at: Optional creation timestamp

        Returns:
            Created Task instance

        Raises:
            ProjectNotFoundError: If project does not exist
            TaskNotFoundError: If parent task does not exist
            InvalidParentError: If parent belongs to another project
            PriorityConstraintError: If priority is below the parent's priority
        """
        try:
            logger.debug(f"Creating task: title='{title}', project_id={project_id}, parent_id={parent_id}")

            await self._verify_project_exists(project_id)

            parent_orm = None
            depth = 0
            ancestor_ids: List[str] = []
            if parent_id is not None:
                parent_orm = await self._get_task_or_raise(parent_id)
                if parent_orm.project_id != str(project_id):
                    logger.warning(
                        f"Parent {parent_orm.id} belongs to project {parent_orm.project_id}, "
                        f"not {project_id}"
                    )
                    raise InvalidParentError(
                        f"Parent task {parent_orm.id} belongs to a different project"
                    )
                chain = await self.hierarchy.ancestors(parent_orm)
                ancestor_ids = [ancestor.id for ancestor in reversed(chain)] + [parent_orm.id]
                depth = len(ancestor_ids)

            if priority is None:
                resolved_priority = TaskPriority(parent_orm.priority) if parent_orm else self.default_priority
            else:
                resolved_priority = to_priority(priority)
                if parent_orm is not None:
                    validation = validate_parent_priority_constraint(resolved_priority, parent_orm.priority)
                    if not validation.valid:
                        logger.warning(f"Rejected subtask priority: {validation.error}")
                        raise PriorityConstraintError(validation.error, validation)

            sort_order = await self.hierarchy.get_next_child_sort_order(
                str(project_id),
                parent_orm.id if parent_orm else None
            )

            task_data = {
                'title': title,
                'description': description,
                'project_id': project_id,
                'parent_id': parent_orm.id if parent_orm else None,
                'priority': resolved_priority,
                'depth': depth,
                'sort_order': sort_order,
                'due_date': due_date,
            }
            if task_id is not None:
                task_data['id'] = task_id
            if created_at is not None:
                task_data['created_at'] = created_at
                task_data['updated_at'] = created_at

            task = Task.model_validate(task_data)
            task.path = build_path(ancestor_ids, str(task.id))

            task_orm = self._pydantic_to_orm(task)
            self.session.add(task_orm)
            await self.session.flush()

            if parent_orm is not None:
                await self.rollup.update_parent_status(parent_orm)

            logger.info(
                f"Created task: id={task.id}, title='{title}', depth={depth}, "
                f"priority={resolved_priority.value}, sort_order={sort_order}"
            )
            return await self._fetch_task_with_counts(task_orm)
        except (ProjectNotFoundError, TaskNotFoundError, InvalidParentError, PriorityConstraintError):
            raise
        except Exception as e:
            logger.error(f"Failed to create task: {e}", exc_info=True)
            raise

    async def create_child_task(
        self,
        parent_id: IdLike,
        title: str,
        description: Optional[str] = None,
        priority: Optional[Union[TaskPriority, str]] = None,
        due_date: Optional[date] = None,
    ) -> Task:
        """
        Create a subtask under a parent task, in the parent's project.

        Raises:
            TaskNotFoundError: If parent task does not exist
            PriorityConstraintError: If priority is below the parent's priority
        """
        parent_orm = await self._get_task_or_raise(parent_id)
        return await self.create_task(
            title=title,
            project_id=parent_orm.project_id,
            description=description,
            parent_id=parent_orm.id,
            priority=priority,
            due_date=due_date,
        )

    # ==============================================================================
    # READ OPERATIONS
    # ==============================================================================

    async def get_task_by_id(self, task_id: IdLike) -> Optional[Task]:
        """
        Get a task by its ID.

        Returns:
            Task instance or None if not found
        """
        task_orm = await self.session.get(TaskORM, str(task_id))
        if not task_orm:
            return None
        return await self._fetch_task_with_counts(task_orm)

    async def get_tasks_for_project(
        self,
        project_id: IdLike,
        top_level_only: bool = True
    ) -> List[Task]:
        """
        Get the tasks of a project.

        Args:
            project_id: ID of the project
            top_level_only: Only return top-level tasks (ordered by
                sort_order); otherwise return every task in hierarchical order

        Raises:
            ProjectNotFoundError: If project does not exist
        """
        await self._verify_project_exists(project_id)

        query = select(TaskORM).where(TaskORM.project_id == str(project_id))
        if top_level_only:
            query = query.where(TaskORM.parent_id.is_(None))
        result = await self.session.execute(query.order_by(TaskORM.sort_order, TaskORM.id))
        task_orms = list(result.scalars().all())

        if not top_level_only:
            task_orms = sort_tasks_hierarchically(task_orms)
        return await self._fetch_tasks_with_counts(task_orms)

    async def get_project_tree(self, project_id: IdLike) -> List[Task]:
        """
        Get every task of a project in display order.

        Each task is followed by its subtree; siblings are ordered by
        sort_order.
        """
        return await self.get_tasks_for_project(project_id, top_level_only=False)

    async def get_children(self, parent_id: IdLike) -> List[Task]:
        """
        Get all direct children of a parent task, ordered by sort_order.

        Raises:
            TaskNotFoundError: If parent task does not exist
        """
        parent_orm = await self._get_task_or_raise(parent_id)
        return await self._fetch_tasks_with_counts(await self.hierarchy.get_children(parent_orm))

    async def get_all_descendants(self, parent_id: IdLike) -> List[Task]:
        """
        Get all descendants of a parent task in hierarchical order.

        Raises:
            TaskNotFoundError: If parent task does not exist
        """
        parent_orm = await self._get_task_or_raise(parent_id)
        subtree = await self.hierarchy.collect_subtree(parent_orm)
        return await self._fetch_tasks_with_counts(sort_tasks_hierarchically(subtree))

    # ==============================================================================
    # UPDATE OPERATIONS
    # ==============================================================================

    async def update_task(
        self,
        task_id: IdLike,
        title: Optional[str] = None,
        description: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> Task:
        """
        Update a task's plain properties.

        Args:
            task_id: ID of the task to update
            title: New title (if provided)
            description: New description (if provided)
            due_date: New due date (if provided)

        Returns:
            Updated Task instance

        Raises:
            TaskNotFoundError: If task does not exist
            ValueError: If no fields are provided, or the title is empty or too long
        """
        if title is None and description is None and due_date is None:
            raise ValueError("At least one of title, description, or due_date must be provided")
        if title is not None and not 1 <= len(title) <= 255:
            raise ValueError("Title must be between 1 and 255 characters")

        try:
            logger.debug(f"Updating task {task_id}: title={title}, due_date={due_date}")

            task_orm = await self._get_task_or_raise(task_id)

            if title is not None:
                task_orm.title = title
            if description is not None:
                task_orm.description = description
            if due_date is not None:
                task_orm.due_date = due_date
            task_orm.updated_at = utcnow()

            await self.session.flush()

            logger.info(f"Updated task: id={task_id}, title='{task_orm.title}'")
            return await self._fetch_task_with_counts(task_orm)
        except TaskNotFoundError as e:
            logger.error(f"Failed to update task - not found: {e}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Failed to update task {task_id}: {e}", exc_info=True)
            raise

    async def set_priority(
        self,
        task_id: IdLike,
        priority: Union[TaskPriority, str]
    ) -> PriorityUpdateResult:
        """
        Change the priority of a task.

        The new priority may not be below the parent's priority, and may not
        rise above the priority of any direct child. A rejected change
        leaves the task untouched.

        Args:
            task_id: ID of the task
            priority: Requested priority

        Returns:
            PriorityUpdateResult

        Raises:
            TaskNotFoundError: If task does not exist
            ValueError: If priority is not a known priority
        """
        task_orm = await self._get_task_or_raise(task_id)
        current = TaskPriority(task_orm.priority)
        requested = to_priority(priority)

        parent_orm = await self.hierarchy.get_parent(task_orm)
        validation = validate_parent_priority_constraint(
            requested,
            parent_orm.priority if parent_orm else None
        )
        if not validation.valid:
            logger.info(f"Priority change rejected for task {task_orm.id}: {validation.error}")
            return PriorityUpdateResult(
                success=False,
                task_id=task_orm.id,
                priority=current,
                validation=validation,
                error="below_parent_priority",
                message=validation.error,
            )

        children = await self.hierarchy.get_children(task_orm)
        lower_children = [
            child for child in children
            if TaskPriority(child.priority).level < requested.level
        ]
        if lower_children:
            message = (
                f"Cannot raise priority to '{requested.value}': "
                f"{len(lower_children)} subtask(s) have a lower priority."
            )
            logger.info(f"Priority change rejected for task {task_orm.id}: {message}")
            return PriorityUpdateResult(
                success=False,
                task_id=task_orm.id,
                priority=current,
                validation=validation,
                error="children_below_priority",
                message=message,
            )

        if requested == current:
            return PriorityUpdateResult(
                success=True,
                task_id=task_orm.id,
                priority=current,
                validation=validation,
                message="Priority unchanged.",
            )

        try:
            task_orm.priority = requested.value
            task_orm.updated_at = utcnow()
            await self.session.flush()
        except Exception as e:
            logger.error(f"Failed to set priority for task {task_id}: {e}", exc_info=True)
            raise

        logger.info(f"Task priority updated: task_id={task_orm.id}, {current.value} -> {requested.value}")
        return PriorityUpdateResult(
            success=True,
            task_id=task_orm.id,
            priority=requested,
            old_priority=current,
            validation=validation,
            message=f"Priority changed from {current.value} to {requested.value}.",
        )

    async def update_status(
        self,
        task_id: IdLike,
        status: Union[TaskStatus, str]
    ) -> StatusUpdateResult:
        """
        Set a task's status and roll it up through its ancestors.

        Completing a task that has subtasks is refused; it completes when
        all of its subtasks do.

        Args:
            task_id: ID of the task
            status: New status

        Returns:
            StatusUpdateResult with the IDs of ancestors whose status changed

        Raises:
            TaskNotFoundError: If task does not exist
            ValueError: If status is not a known status
        """
        task_orm = await self._get_task_or_raise(task_id)

        try:
            changed = await self.rollup.update_status(task_orm, status)
        except DirectCompletionOfParentError as e:
            return StatusUpdateResult(
                success=False,
                task_id=task_orm.id,
                status=TaskStatus(task_orm.status),
                error="direct_completion_of_parent",
                message=str(e),
            )

        return StatusUpdateResult(
            success=True,
            task_id=task_orm.id,
            status=TaskStatus(task_orm.status),
            updated_ancestor_ids=[ancestor.id for ancestor in changed],
            message="Task status updated.",
        )

    async def reorder_task(
        self,
        task_id: IdLike,
        new_position: int,
        confirmed: bool = False,
        context: Union[ReorderContext, str] = ReorderContext.ALL
    ) -> ReorderResult:
        """
        Move a task to a new position among its siblings.

        See ReorderService.reorder_to() for the result semantics.

        Raises:
            TaskNotFoundError: If task does not exist
            ReorderConflictError: If siblings changed while the move was applied
        """
        task_orm = await self._get_task_or_raise(task_id)
        return await self.reorder.reorder_to(task_orm, new_position, confirmed=confirmed, context=context)

    # ==============================================================================
    # HIERARCHY OPERATIONS
    # ==============================================================================

    async def move_task(
        self,
        task_id: IdLike,
        new_parent_id: Optional[IdLike] = None,
        priority: Optional[Union[TaskPriority, str]] = None,
    ) -> Task:
        """
        Move a task (with its subtree) under a new parent.

        The task is appended to the new sibling set, the old sibling set is
        compacted, depth and path are rebuilt for the whole subtree, and
        the derived statuses of the old and new parent are recomputed.

        Args:
            task_id: ID of the task to move
            new_parent_id: New parent ID (None for top-level)
            priority: Optional replacement priority applied with the move

        Returns:
            Updated Task instance

        Raises:
            TaskNotFoundError: If task or new parent does not exist
            InvalidParentError: If the new parent is in another project, is
                the task itself, or is one of its descendants
            PriorityConstraintError: If the resulting priority is below the
                new parent's, or above a subtask's
        """
        task_orm = await self._get_task_or_raise(task_id)
        old_parent_id = task_orm.parent_id
        target_parent_id = str(new_parent_id) if new_parent_id is not None else None

        new_parent_orm = None
        if target_parent_id is not None:
            new_parent_orm = await self._get_task_or_raise(target_parent_id)
            if new_parent_orm.project_id != task_orm.project_id:
                raise InvalidParentError(
                    f"Cannot move task {task_orm.id} under a task from another project"
                )
            if await self.hierarchy.would_create_cycle(task_orm, target_parent_id):
                raise InvalidParentError(
                    f"Cannot move task {task_orm.id} under itself or one of its descendants"
                )

        candidate = to_priority(priority) if priority is not None else TaskPriority(task_orm.priority)
        validation = validate_parent_priority_constraint(
            candidate,
            new_parent_orm.priority if new_parent_orm else None
        )
        if not validation.valid:
            logger.warning(f"Rejected move of task {task_orm.id}: {validation.error}")
            raise PriorityConstraintError(validation.error, validation)

        children = await self.hierarchy.get_children(task_orm)
        if any(TaskPriority(child.priority).level < candidate.level for child in children):
            raise PriorityConstraintError(
                f"Cannot give task {task_orm.id} priority '{candidate.value}': "
                f"some of its subtasks have a lower priority"
            )

        if target_parent_id == old_parent_id and candidate.value == task_orm.priority:
            return await self._fetch_task_with_counts(task_orm)

        try:
            logger.debug(f"Moving task {task_orm.id}: parent {old_parent_id} -> {target_parent_id}")

            async with self.lock_registry.acquire(
                (task_orm.project_id, old_parent_id),
                (task_orm.project_id, target_parent_id)
            ):
                old_parent_orm = await self.hierarchy.get_parent(task_orm)

                if target_parent_id != old_parent_id:
                    task_orm.sort_order = await self.hierarchy.get_next_child_sort_order(
                        task_orm.project_id, target_parent_id
                    )
                    task_orm.parent_id = target_parent_id
                task_orm.priority = candidate.value
                task_orm.updated_at = utcnow()
                await self.session.flush()

                if target_parent_id != old_parent_id:
                    await self.hierarchy.update_hierarchy_path(task_orm)
                    await self.hierarchy.update_descendant_paths(task_orm)
                    await self.hierarchy.renumber_sibling_set(task_orm.project_id, old_parent_id)
                    await self.hierarchy.renumber_sibling_set(task_orm.project_id, target_parent_id)

                    if old_parent_orm is not None:
                        await self.rollup.update_parent_status(old_parent_orm)
                    if new_parent_orm is not None:
                        await self.rollup.update_parent_status(new_parent_orm)

            logger.info(
                f"Moved task: id={task_orm.id}, parent={target_parent_id}, "
                f"depth={task_orm.depth}, sort_order={task_orm.sort_order}"
            )
            return await self._fetch_task_with_counts(task_orm)
        except Exception as e:
            logger.error(f"Failed to move task {task_id}: {e}", exc_info=True)
            raise

    async def rebuild_hierarchy(self, project_id: IdLike) -> int:
        """
        Recompute depth and path of every task in a project.

        Returns:
            Number of tasks processed

        Raises:
            ProjectNotFoundError: If project does not exist
        """
        await self._verify_project_exists(project_id)
        return await self.hierarchy.rebuild_project_hierarchy(str(project_id))

    async def initialize_ordering(self, project_id: IdLike) -> int:
        """
        Compact every sibling set of a project to 1..N and fill in missing
        move bookkeeping.

        Returns:
            Number of tasks processed

        Raises:
            ProjectNotFoundError: If project does not exist
        """
        await self._verify_project_exists(project_id)

        result = await self.session.execute(
            select(TaskORM.parent_id).where(TaskORM.project_id == str(project_id)).distinct()
        )
        parent_ids = list(result.scalars().all())

        processed = 0
        for parent_id in parent_ids:
            async with self.lock_registry.acquire((str(project_id), parent_id)):
                sibling_set = await self.hierarchy.renumber_sibling_set(str(project_id), parent_id)
                for task_orm in sibling_set:
                    self.reorder.initialize_order_tracking(task_orm)
                processed += len(sibling_set)

        await self.session.flush()
        logger.info(f"Initialized ordering for project {project_id}: tasks={processed}")
        return processed

    # ==============================================================================
    # DELETE OPERATIONS
    # ==============================================================================

    async def delete_task(self, task_id: IdLike) -> int:
        """
        Delete a task and all its descendants (cascade delete).

        Descendants are removed deepest first, the remaining siblings are
        compacted to 1..N and the parent's derived status is recomputed.

        Args:
            task_id: ID of the task to delete

        Returns:
            Number of tasks deleted (the task plus its descendants)

        Raises:
            TaskNotFoundError: If task does not exist
        """
        try:
            logger.debug(f"Deleting task {task_id} and descendants")

            task_orm = await self._get_task_or_raise(task_id)
            project_id = task_orm.project_id
            parent_id = task_orm.parent_id
            task_title = task_orm.title

            async with self.lock_registry.acquire((project_id, parent_id)):
                parent_orm = await self.hierarchy.get_parent(task_orm)
                descendants = await self.hierarchy.collect_subtree(task_orm)

                for descendant in reversed(descendants):
                    await self.session.delete(descendant)
                await self.session.delete(task_orm)
                await self.session.flush()

                await self.hierarchy.renumber_sibling_set(project_id, parent_id)

            if parent_orm is not None:
                await self.rollup.update_parent_status(parent_orm)

            logger.info(
                f"Deleted task: id={task_id}, title='{task_title}', descendants={len(descendants)}"
            )
            return len(descendants) + 1
        except TaskNotFoundError as e:
            logger.error(f"Failed to delete task - not found: {e}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Failed to delete task {task_id}: {e}", exc_info=True)
            raise

"""
Hierarchy maintenance for tasktree.

Keeps ``depth`` and the materialized ``path`` of tasks in line with their
parent chain and answers tree navigation questions (ancestors, root,
descendants, siblings, leaves, completion). All traversal is done through
id lookups on ``TaskORM.parent_id``; every chain walk is bounded and checks
for revisited ids so corrupt data fails loudly instead of looping.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktree.config import DEFAULT_MAX_TRAVERSAL_DEPTH
from tasktree.database import TaskORM
from tasktree.logging_config import get_logger
from tasktree.models import TaskStatus
from tasktree.services.errors import HierarchyIntegrityError

logger = get_logger(__name__)

PATH_SEPARATOR = "/"

T = TypeVar("T")


def sort_tasks_hierarchically(tasks: Iterable[T]) -> List[T]:
    """
    Flatten tasks into depth-first order, siblings ordered by sort_order.

    Works on anything with ``id``, ``parent_id`` and ``sort_order``
    attributes (ORM rows or Pydantic tasks). Tasks whose parent is not part
    of the input are treated as roots.

    Args:
        tasks: Tasks of one project, in any order

    Returns:
        Tasks in display order: each parent followed by its subtree

    Example:
        Parent A (1) -> Child A2 (1); Parent B (2) -> Child A1 (1), Child B1 (2)
        yields [Parent A, Child A2, Parent B, Child A1, Child B1]
    """
    task_list = list(tasks)
    ids = {str(t.id) for t in task_list}
    children: Dict[Optional[str], List[T]] = defaultdict(list)

    for task in task_list:
        parent_key = str(task.parent_id) if task.parent_id is not None else None
        if parent_key not in ids:
            parent_key = None
        children[parent_key].append(task)

    def order_key(task) -> Tuple[int, str]:
        return (task.sort_order, str(task.id))

    for siblings in children.values():
        siblings.sort(key=order_key)

    ordered: List[T] = []
    visited = set()
    stack = list(reversed(children[None]))
    while stack:
        task = stack.pop()
        task_id = str(task.id)
        if task_id in visited:
            continue
        visited.add(task_id)
        ordered.append(task)
        stack.extend(reversed(children.get(task_id, [])))

    return ordered


def build_path(ancestor_ids: Sequence[str], task_id: str) -> str:
    """Join root-first ancestor ids and the task's own id into a path."""
    return PATH_SEPARATOR.join([*ancestor_ids, task_id])


class HierarchyService:
    """
    Tree navigation and depth/path maintenance over the task store.

    Operates on TaskORM rows inside the caller's session; writes are flushed
    but never committed here.
    """

    def __init__(
        self,
        session: AsyncSession,
        max_traversal_depth: int = DEFAULT_MAX_TRAVERSAL_DEPTH
    ) -> None:
        """
        Initialize hierarchy service with database session.

        Args:
            session: Active async database session
            max_traversal_depth: Upper bound for any parent chain walk
        """
        self.session = session
        self.max_traversal_depth = max_traversal_depth

    # ==============================================================================
    # PARENT CHAIN
    # ==============================================================================

    async def get_parent(self, task: TaskORM) -> Optional[TaskORM]:
        """
        Load the parent of a task.

        Returns:
            Parent TaskORM, or None for top-level tasks

        Raises:
            HierarchyIntegrityError: If the parent is missing or in another project
        """
        if task.parent_id is None:
            return None

        parent = await self.session.get(TaskORM, task.parent_id)
        if parent is None:
            logger.error(f"Dangling parent reference: task={task.id}, parent_id={task.parent_id}")
            raise HierarchyIntegrityError(
                f"Task {task.id} references missing parent {task.parent_id}"
            )
        if parent.project_id != task.project_id:
            logger.error(
                f"Cross-project parent reference: task={task.id} (project {task.project_id}), "
                f"parent={parent.id} (project {parent.project_id})"
            )
            raise HierarchyIntegrityError(
                f"Task {task.id} references parent {parent.id} from another project"
            )
        return parent

    async def ancestors(self, task: TaskORM) -> List[TaskORM]:
        """
        Get the ancestor chain of a task, nearest first.

        Args:
            task: Task to start from

        Returns:
            [parent, grandparent, ..., root]; empty for top-level tasks

        Raises:
            HierarchyIntegrityError: On dangling parents, cycles, or chains
                longer than max_traversal_depth
        """
        chain: List[TaskORM] = []
        seen = {task.id}
        current = task

        while current.parent_id is not None:
            if len(chain) >= self.max_traversal_depth:
                logger.error(f"Parent chain of task {task.id} exceeds {self.max_traversal_depth} levels")
                raise HierarchyIntegrityError(
                    f"Parent chain of task {task.id} exceeds maximum depth {self.max_traversal_depth}"
                )
            parent = await self.get_parent(current)
            if parent.id in seen:
                logger.error(f"Cycle detected in parent chain of task {task.id} at {parent.id}")
                raise HierarchyIntegrityError(f"Cycle detected in parent chain of task {task.id}")
            seen.add(parent.id)
            chain.append(parent)
            current = parent

        return chain

    async def get_root(self, task: TaskORM) -> TaskORM:
        """Get the top-level ancestor of a task (the task itself if top-level)."""
        chain = await self.ancestors(task)
        return chain[-1] if chain else task

    async def would_create_cycle(self, task: TaskORM, new_parent_id: Optional[str]) -> bool:
        """
        Check whether making new_parent_id the parent of task would form a cycle.

        Args:
            task: Task being reparented
            new_parent_id: Candidate parent id (None means top-level)

        Returns:
            True if the candidate is the task itself or one of its descendants
        """
        if new_parent_id is None:
            return False
        if new_parent_id == task.id:
            return True

        candidate = await self.session.get(TaskORM, new_parent_id)
        if candidate is None:
            return False

        chain = await self.ancestors(candidate)
        return any(ancestor.id == task.id for ancestor in chain)

    # ==============================================================================
    # DEPTH / PATH MAINTENANCE
    # ==============================================================================

    async def update_hierarchy_path(self, task: TaskORM) -> TaskORM:
        """
        Recompute and persist depth and path of a task.

        Depth is the length of the ancestor chain; path is the root-first
        chain of ids ending in the task's own id. Calling this twice without
        a parent change yields the same values.

        Args:
            task: Task to update

        Returns:
            The same TaskORM, updated and flushed
        """
        chain = await self.ancestors(task)
        task.depth = len(chain)
        task.path = build_path([ancestor.id for ancestor in reversed(chain)], task.id)
        await self.session.flush()

        logger.debug(f"Hierarchy path updated: task={task.id}, depth={task.depth}, path={task.path}")
        return task

    async def update_descendant_paths(self, task: TaskORM) -> int:
        """
        Rewrite depth and path of every descendant below task.

        Walks the subtree top-down through parent_id, so stale paths below
        the task do not matter. Call after task's own path is up to date.

        Returns:
            Number of descendants updated
        """
        updated = 0
        for parent, child in await self._walk_subtree(task):
            child.depth = parent.depth + 1
            child.path = build_path([parent.path], child.id)
            updated += 1

        if updated:
            await self.session.flush()
            logger.debug(f"Updated hierarchy path for {updated} descendants of task {task.id}")
        return updated

    async def rebuild_project_hierarchy(self, project_id: str) -> int:
        """
        Recompute depth and path for every task of a project.

        Args:
            project_id: Project to rebuild

        Returns:
            Number of tasks processed

        Raises:
            HierarchyIntegrityError: If any task has a dangling or cyclic parent chain
        """
        result = await self.session.execute(
            select(TaskORM).where(TaskORM.project_id == project_id)
        )
        tasks = {task.id: task for task in result.scalars().all()}

        for task in tasks.values():
            ancestor_ids: List[str] = []
            seen = {task.id}
            current = task
            while current.parent_id is not None:
                parent = tasks.get(current.parent_id)
                if parent is None:
                    logger.error(f"Dangling parent reference: task={current.id}, parent_id={current.parent_id}")
                    raise HierarchyIntegrityError(
                        f"Task {current.id} references missing parent {current.parent_id}"
                    )
                if parent.id in seen or len(ancestor_ids) >= self.max_traversal_depth:
                    logger.error(f"Cycle detected in parent chain of task {task.id}")
                    raise HierarchyIntegrityError(f"Cycle detected in parent chain of task {task.id}")
                seen.add(parent.id)
                ancestor_ids.append(parent.id)
                current = parent

            task.depth = len(ancestor_ids)
            task.path = build_path(list(reversed(ancestor_ids)), task.id)

        await self.session.flush()
        logger.info(f"Rebuilt hierarchy for project {project_id}: tasks={len(tasks)}")
        return len(tasks)

    # ==============================================================================
    # TREE NAVIGATION
    # ==============================================================================

    async def get_children(self, task: TaskORM) -> List[TaskORM]:
        """Get direct children of a task ordered by sort_order."""
        result = await self.session.execute(
            select(TaskORM)
            .where(TaskORM.project_id == task.project_id)
            .where(TaskORM.parent_id == task.id)
            .order_by(TaskORM.sort_order, TaskORM.created_at, TaskORM.id)
        )
        return list(result.scalars().all())

    async def get_sibling_set(
        self,
        project_id: str,
        parent_id: Optional[str]
    ) -> List[TaskORM]:
        """
        Get every task sharing a parent within a project, ordered by sort_order.

        Args:
            project_id: Owning project
            parent_id: Shared parent id, None for the top-level set

        Returns:
            Ordered list of TaskORM rows
        """
        query = select(TaskORM).where(TaskORM.project_id == project_id)
        if parent_id is not None:
            query = query.where(TaskORM.parent_id == parent_id)
        else:
            query = query.where(TaskORM.parent_id.is_(None))

        result = await self.session.execute(
            query.order_by(TaskORM.sort_order, TaskORM.created_at, TaskORM.id)
        )
        return list(result.scalars().all())

    async def sibling_set(self, task: TaskORM) -> List[TaskORM]:
        """Get the task's sibling set, the task itself included."""
        return await self.get_sibling_set(task.project_id, task.parent_id)

    async def siblings(self, task: TaskORM) -> List[TaskORM]:
        """Get the other tasks sharing the task's parent and project."""
        sibling_set = await self.get_sibling_set(task.project_id, task.parent_id)
        return [sibling for sibling in sibling_set if sibling.id != task.id]

    async def descendants(self, task: TaskORM) -> List[TaskORM]:
        """
        Get all tasks below task, using the materialized path.

        Args:
            task: Task whose subtree to fetch

        Returns:
            Descendants ordered by depth, then sort_order
        """
        if not task.path:
            await self.update_hierarchy_path(task)

        result = await self.session.execute(
            select(TaskORM)
            .where(TaskORM.project_id == task.project_id)
            .where(TaskORM.path.like(f"{task.path}{PATH_SEPARATOR}%"))
            .order_by(TaskORM.depth, TaskORM.sort_order, TaskORM.id)
        )
        return list(result.scalars().all())

    async def collect_subtree(self, task: TaskORM) -> List[TaskORM]:
        """
        Get all descendants by following parent_id links (depth-first).

        Unlike descendants() this does not rely on stored paths.
        """
        return [child for _, child in await self._walk_subtree(task)]

    async def _walk_subtree(self, task: TaskORM) -> List[Tuple[TaskORM, TaskORM]]:
        """
        Collect (parent, child) pairs below task in top-down order.

        Raises:
            HierarchyIntegrityError: If a task is reached twice
        """
        pairs: List[Tuple[TaskORM, TaskORM]] = []
        seen = {task.id}
        frontier = [task]

        while frontier:
            next_frontier: List[TaskORM] = []
            for parent in frontier:
                for child in await self.get_children(parent):
                    if child.id in seen:
                        logger.error(f"Cycle detected below task {task.id} at {child.id}")
                        raise HierarchyIntegrityError(f"Cycle detected below task {task.id}")
                    seen.add(child.id)
                    pairs.append((parent, child))
                    next_frontier.append(child)
            frontier = next_frontier

        return pairs

    async def child_count(self, task: TaskORM) -> int:
        """Count direct children of a task."""
        result = await self.session.execute(
            select(func.count())
            .select_from(TaskORM)
            .where(TaskORM.project_id == task.project_id)
            .where(TaskORM.parent_id == task.id)
        )
        return result.scalar_one()

    @staticmethod
    def is_top_level(task: TaskORM) -> bool:
        """True if the task has no parent."""
        return task.parent_id is None

    async def is_leaf(self, task: TaskORM) -> bool:
        """True if the task has no children."""
        return await self.child_count(task) == 0

    async def get_next_child_sort_order(
        self,
        project_id: str,
        parent_id: Optional[str]
    ) -> int:
        """
        Sort order for a task appended to a sibling set.

        Returns:
            max(sibling sort_order) + 1, or 1 for an empty set
        """
        query = select(func.max(TaskORM.sort_order)).where(TaskORM.project_id == project_id)
        if parent_id is not None:
            query = query.where(TaskORM.parent_id == parent_id)
        else:
            query = query.where(TaskORM.parent_id.is_(None))

        result = await self.session.execute(query)
        current_max = result.scalar_one_or_none()
        return 1 if current_max is None else current_max + 1

    async def renumber_sibling_set(
        self,
        project_id: str,
        parent_id: Optional[str]
    ) -> List[TaskORM]:
        """
        Compact a sibling set's sort_order to 1..N, keeping the current order.

        Returns:
            The sibling set in its new order
        """
        sibling_set = await self.get_sibling_set(project_id, parent_id)
        for index, sibling in enumerate(sibling_set, start=1):
            if sibling.sort_order != index:
                sibling.sort_order = index
        await self.session.flush()
        return sibling_set

    # ==============================================================================
    # AGGREGATES
    # ==============================================================================

    async def hierarchy_counts(self, task: TaskORM) -> Tuple[int, int, int]:
        """
        Count children, descendant leaves and completed descendant leaves.

        Returns:
            Tuple of (child_count, leaf_count, completed_leaf_count)
        """
        subtree = await self.collect_subtree(task)
        if not subtree:
            return 0, 0, 0

        parent_ids = {node.parent_id for node in subtree}
        leaves = [node for node in subtree if node.id not in parent_ids]
        completed = sum(1 for leaf in leaves if leaf.status == TaskStatus.COMPLETED.value)
        child_count = sum(1 for node in subtree if node.parent_id == task.id)
        return child_count, len(leaves), completed

    async def get_completion_percentage(self, task: TaskORM) -> float:
        """
        Completion percentage of a task.

        A leaf is 100.0 when completed and 0.0 otherwise. A parent reports
        completed descendant leaves over all descendant leaves, rounded to 2
        decimals.
        """
        child_count, leaf_count, completed = await self.hierarchy_counts(task)
        if child_count == 0:
            return 100.0 if task.status == TaskStatus.COMPLETED.value else 0.0
        if leaf_count == 0:
            return 0.0
        return round(completed / leaf_count * 100, 2)

    async def has_incomplete_descendants(self, task: TaskORM) -> bool:
        """True if any task below task is not completed."""
        return any(
            node.status != TaskStatus.COMPLETED.value
            for node in await self.collect_subtree(task)
        )

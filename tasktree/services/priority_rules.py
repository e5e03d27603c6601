"""
Priority constraint rules for tasktree.

A child's priority must be at least its parent's priority on the ordinal
scale low < medium < high. Checking the immediate parent is enough: the
parent already satisfies the same rule against its own parent.
"""

from typing import Iterable, Optional, Union

from tasktree.logging_config import get_logger
from tasktree.models import TaskPriority
from tasktree.results import PriorityValidationResult

logger = get_logger(__name__)

PriorityLike = Union[TaskPriority, str]


def to_priority(value: PriorityLike) -> TaskPriority:
    """
    Coerce a priority name into a TaskPriority.

    Raises:
        ValueError: If the value is not a known priority
    """
    if isinstance(value, TaskPriority):
        return value
    return TaskPriority(str(value).lower())


def priority_level(value: PriorityLike) -> int:
    """
    Get the ordinal value of a priority.

    Examples:
        >>> priority_level("high")
        3
        >>> priority_level(TaskPriority.LOW)
        1
    """
    return to_priority(value).level


def validate_parent_priority_constraint(
    candidate: PriorityLike,
    parent_priority: Optional[PriorityLike]
) -> PriorityValidationResult:
    """
    Check a candidate priority against the parent's priority.

    Args:
        candidate: Priority the task would get
        parent_priority: Current priority of the parent, None for top-level tasks

    Returns:
        PriorityValidationResult; when invalid it carries the parent's
        priority, the attempted priority and the minimum allowed priority
    """
    attempted = to_priority(candidate)

    if parent_priority is None:
        return PriorityValidationResult(valid=True, attempted_priority=attempted)

    parent = to_priority(parent_priority)
    if attempted.level >= parent.level:
        return PriorityValidationResult(
            valid=True,
            parent_priority=parent,
            attempted_priority=attempted,
            minimum_allowed_priority=parent,
        )

    logger.debug(
        f"Priority constraint violated: attempted={attempted.value}, parent={parent.value}"
    )
    return PriorityValidationResult(
        valid=False,
        parent_priority=parent,
        attempted_priority=attempted,
        minimum_allowed_priority=parent,
        error=(
            f"Subtask cannot have lower priority than its parent task. "
            f"Parent priority is '{parent.value}', minimum allowed priority is '{parent.value}'."
        ),
    )


def clamp_to_parent(
    priority: PriorityLike,
    parent_priority: Optional[PriorityLike]
) -> TaskPriority:
    """
    Raise a priority to the parent's priority if it is below it.

    Examples:
        >>> clamp_to_parent("low", "high")
        <TaskPriority.HIGH: 'high'>
        >>> clamp_to_parent("high", "medium")
        <TaskPriority.HIGH: 'high'>
    """
    resolved = to_priority(priority)
    if parent_priority is None:
        return resolved
    parent = to_priority(parent_priority)
    return parent if resolved.level < parent.level else resolved


def resolve_neighbor_priority(
    current: PriorityLike,
    neighbor_priorities: Iterable[PriorityLike]
) -> TaskPriority:
    """
    Priority a task adopts from its neighbors after a move.

    The task takes the highest priority among its new neighbors, which may
    be lower than its current priority. Without neighbors the priority is
    unchanged.

    Args:
        current: Current priority of the moved task
        neighbor_priorities: Priorities of the tasks adjacent to the destination

    Returns:
        Resolved priority (before the parent and child constraints are applied)
    """
    neighbors = [to_priority(p) for p in neighbor_priorities]
    if not neighbors:
        return to_priority(current)
    return max(neighbors, key=lambda p: p.level)


def cap_to_children(
    priority: PriorityLike,
    child_priorities: Iterable[PriorityLike]
) -> TaskPriority:
    """
    Lower a priority to the lowest direct child's priority if it is above it.

    Examples:
        >>> cap_to_children("high", ["medium", "high"])
        <TaskPriority.MEDIUM: 'medium'>
        >>> cap_to_children("low", ["medium"])
        <TaskPriority.LOW: 'low'>
    """
    resolved = to_priority(priority)
    children = [to_priority(p) for p in child_priorities]
    if not children:
        return resolved
    lowest = min(children, key=lambda p: p.level)
    return lowest if resolved.level > lowest.level else resolved

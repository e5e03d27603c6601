"""
Exception hierarchy for the task services.

Only structural problems and integrity violations are raised; expected
business outcomes are returned as objects from ``tasktree.results``.
"""


class TaskServiceError(Exception):
    """Base exception for task service errors."""
    pass


class TaskNotFoundError(TaskServiceError):
    """Raised when a task is not found."""
    pass


class ProjectNotFoundError(TaskServiceError):
    """Raised when a project is not found."""
    pass


class InvalidParentError(TaskServiceError):
    """Raised when a requested parent is in another project or would create a cycle."""
    pass


class PriorityConstraintError(TaskServiceError):
    """Raised when a task is created or moved with a priority below its parent's."""

    def __init__(self, message: str, validation=None):
        super().__init__(message)
        self.validation = validation


class DirectCompletionOfParentError(TaskServiceError):
    """Raised when a task with children is set to completed directly."""
    pass


class HierarchyIntegrityError(TaskServiceError):
    """
    Raised when stored hierarchy data is corrupt.

    Dangling or cross-project parent ids and parent chains that loop back on
    themselves all end up here.
    """
    pass


class ReorderConflictError(TaskServiceError):
    """Raised when siblings changed between planning and applying a reorder."""
    pass

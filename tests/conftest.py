"""
Pytest configuration and fixtures for tasktree tests.

Provides database fixtures, seeded projects and task trees, and test data
factories.
"""

from collections import defaultdict
from datetime import datetime
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from tasktree.database import DatabaseManager, ProjectORM, TaskORM
from tasktree.models import Project, Task, TaskPriority, TaskStatus
from tasktree.services import reorder_service
from tasktree.utils.datetime_utils import utcnow


@pytest.fixture(autouse=True)
def fresh_lock_registry(monkeypatch):
    """Give every test its own process-wide sibling lock registry."""
    monkeypatch.setattr(reorder_service, "_lock_registry", None)


@pytest_asyncio.fixture
async def db_manager():
    """
    Create an in-memory SQLite database for testing.

    Yields:
        DatabaseManager instance with in-memory database

    Example:
        async def test_something(db_manager):
            async with db_manager.get_session() as session:
                # Test database operations
    """
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.initialize()

    yield manager

    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    """
    Provide a database session for tests.

    Yields:
        AsyncSession for database operations
    """
    async with db_manager.get_session() as session:
        yield session


@pytest.fixture
def sample_project_id():
    """Generate a consistent UUID for the test project."""
    return UUID("12345678-1234-5678-1234-567812345678")


@pytest.fixture
def other_project_id():
    """Generate a consistent UUID for a second project."""
    return UUID("22345678-1234-5678-1234-567812345678")


@pytest_asyncio.fixture
async def sample_project(db_session, sample_project_id):
    """
    Create a sample project in the database.

    Returns:
        ProjectORM instance
    """
    project = ProjectORM(
        id=str(sample_project_id),
        name="Website relaunch",
        created_at=utcnow()
    )
    db_session.add(project)
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def other_project(db_session, other_project_id):
    """Create a second project in the database."""
    project = ProjectORM(
        id=str(other_project_id),
        name="Office move",
        created_at=utcnow()
    )
    db_session.add(project)
    await db_session.commit()
    return project


@pytest.fixture
def add_task(db_session, sample_project):
    """
    Factory fixture that inserts TaskORM rows directly.

    Depth and path follow the given parent; sort_order defaults to the next
    free slot among the new task's siblings. Use it to seed exact
    priorities, statuses and orders without going through the services.

    Example:
        async def test_something(add_task):
            parent = await add_task("Parent", priority="high")
            child = await add_task("Child", parent=parent, priority="high")
    """
    next_order = defaultdict(int)

    async def _add_task(
        title: str = "Task",
        parent: TaskORM = None,
        priority: str = "medium",
        status: str = "pending",
        sort_order: int = None,
        project_id=None,
        **fields
    ) -> TaskORM:
        task_id = str(uuid4())
        if parent is not None:
            project = parent.project_id
        else:
            project = str(project_id) if project_id is not None else sample_project.id
        parent_id = parent.id if parent is not None else None

        key = (project, parent_id)
        if sort_order is None:
            next_order[key] += 1
            sort_order = next_order[key]
        else:
            next_order[key] = max(next_order[key], sort_order)

        now = utcnow()
        task = TaskORM(
            id=task_id,
            project_id=project,
            parent_id=parent_id,
            title=title,
            status=status,
            priority=priority,
            depth=parent.depth + 1 if parent is not None else 0,
            path=f"{parent.path}/{task_id}" if parent is not None else task_id,
            sort_order=sort_order,
            move_count=0,
            created_at=now,
            updated_at=now,
            **fields
        )
        db_session.add(task)
        await db_session.flush()
        return task

    return _add_task


@pytest_asyncio.fixture
async def task_tree(add_task):
    """
    Create a small task tree for hierarchy tests.

    Creates:
        - Parent (high)
          - Child 1 (high)
            - Grandchild (high)
          - Child 2 (high)
        - Other (low)

    Returns:
        Dictionary of TaskORM rows by role
    """
    parent = await add_task("Parent", priority="high")
    child1 = await add_task("Child 1", parent=parent, priority="high")
    grandchild = await add_task("Grandchild", parent=child1, priority="high")
    child2 = await add_task("Child 2", parent=parent, priority="high")
    other = await add_task("Other", priority="low")

    return {
        "parent": parent,
        "child1": child1,
        "grandchild": grandchild,
        "child2": child2,
        "other": other,
    }


@pytest.fixture
def make_task():
    """
    Factory fixture for creating Task Pydantic models.

    Example:
        def test_something(make_task, sample_project_id):
            task = make_task(title="Custom Task", project_id=sample_project_id)
    """
    def _make_task(
        id: UUID = None,
        title: str = "Test Task",
        project_id: UUID = None,
        parent_id: UUID = None,
        depth: int = 0,
        status: TaskStatus = TaskStatus.PENDING,
        priority: TaskPriority = TaskPriority.MEDIUM,
        sort_order: int = 1,
        created_at: datetime = None,
    ) -> Task:
        return Task(
            id=id or uuid4(),
            title=title,
            project_id=project_id or uuid4(),
            parent_id=parent_id,
            depth=depth,
            status=status,
            priority=priority,
            sort_order=sort_order,
            created_at=created_at or utcnow(),
        )
    return _make_task


@pytest.fixture
def make_project():
    """Factory fixture for creating Project Pydantic models."""
    def _make_project(id: UUID = None, name: str = "Test Project") -> Project:
        return Project(id=id or uuid4(), name=name)
    return _make_project

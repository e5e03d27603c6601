"""
Tests for ProjectService.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from tasktree.database import TaskORM
from tasktree.services.project_service import ProjectService
from tasktree.services.task_service import TaskService


class TestProjectService:
    """Tests for project CRUD operations."""

    @pytest.mark.asyncio
    async def test_create_project(self, db_session):
        service = ProjectService(db_session)

        project = await service.create_project("Website relaunch")

        assert project.name == "Website relaunch"
        assert project.task_count == 0

        fetched = await service.get_project(project.id)
        assert fetched is not None
        assert fetched.id == project.id

    @pytest.mark.asyncio
    async def test_get_missing_project(self, db_session):
        service = ProjectService(db_session)

        assert await service.get_project(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_all_projects(self, db_session):
        service = ProjectService(db_session)
        first = await service.create_project("First")
        second = await service.create_project("Second")

        projects = await service.get_all_projects()

        assert {p.id for p in projects} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_counts_and_completion(self, db_session):
        """Test task counts and completion include every task of the project."""
        projects = ProjectService(db_session)
        tasks = TaskService(db_session)
        project = await projects.create_project("Counted")
        parent = await tasks.create_task("Parent", project.id)
        child = await tasks.create_child_task(parent.id, "Child")
        await tasks.create_task("Open", project.id)
        await tasks.update_status(child.id, "completed")

        fetched = await projects.get_project(project.id)

        assert fetched.task_count == 3
        assert fetched.completion_percentage == 66.67

    @pytest.mark.asyncio
    async def test_delete_project_removes_tasks(self, db_session):
        projects = ProjectService(db_session)
        tasks = TaskService(db_session)
        project = await projects.create_project("Doomed")
        kept = await projects.create_project("Kept")
        parent = await tasks.create_task("Parent", project.id)
        await tasks.create_child_task(parent.id, "Child")
        await tasks.create_task("Survivor", kept.id)

        assert await projects.delete_project(project.id) is True

        assert await projects.get_project(project.id) is None
        remaining = await db_session.scalar(select(func.count()).select_from(TaskORM))
        assert remaining == 1

    @pytest.mark.asyncio
    async def test_delete_missing_project(self, db_session):
        service = ProjectService(db_session)

        assert await service.delete_project(uuid4()) is False

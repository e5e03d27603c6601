"""
Project service for tasktree.

Provides CRUD operations for projects, the containers that own task trees.
"""

from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktree.database import ProjectORM, TaskORM
from tasktree.logging_config import get_logger
from tasktree.models import Project, TaskStatus
from tasktree.utils.datetime_utils import utcnow

logger = get_logger(__name__)


class ProjectService:
    """
    Service layer for project management.

    Handles creation, retrieval and deletion of projects. Deleting a
    project deletes every task it owns.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the project service.

        Args:
            session: Active database session for operations
        """
        self.session = session

    async def create_project(
        self,
        name: str,
        project_id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> Project:
        """
        Create a new project.

        Args:
            name: Name of the project
            project_id: Optional UUID (auto-generated if not provided)
            created_at: Optional creation timestamp

        Returns:
            Created Project model
        """
        try:
            logger.debug(f"Creating project: name='{name}', project_id={project_id}")

            project = Project(
                id=project_id or uuid4(),
                name=name,
                created_at=created_at or utcnow(),
            )

            self.session.add(
                ProjectORM(
                    id=str(project.id),
                    name=project.name,
                    created_at=project.created_at,
                )
            )
            await self.session.flush()

            logger.info(f"Created project: id={project.id}, name='{name}'")
            return project
        except Exception as e:
            logger.error(f"Failed to create project: {e}", exc_info=True)
            raise

    async def get_project(self, project_id: Union[UUID, str]) -> Optional[Project]:
        """
        Retrieve a project by ID.

        Returns:
            Project model with task counts if found, None otherwise
        """
        project_orm = await self.session.get(ProjectORM, str(project_id))
        if not project_orm:
            return None
        return await self._orm_to_pydantic_with_counts(project_orm)

    async def get_all_projects(self) -> List[Project]:
        """
        Retrieve all projects ordered by creation date.

        Returns:
            List of Project models with task counts
        """
        result = await self.session.execute(
            select(ProjectORM).order_by(ProjectORM.created_at)
        )
        return [
            await self._orm_to_pydantic_with_counts(project_orm)
            for project_orm in result.scalars().all()
        ]

    async def delete_project(self, project_id: Union[UUID, str]) -> bool:
        """
        Delete a project and all of its tasks.

        Args:
            project_id: ID of the project to delete

        Returns:
            True if deleted, False if the project was not found
        """
        try:
            project_orm = await self.session.get(ProjectORM, str(project_id))
            if not project_orm:
                logger.warning(f"Project not found for deletion: {project_id}")
                return False

            result = await self.session.execute(
                delete(TaskORM).where(TaskORM.project_id == str(project_id))
            )
            await self.session.delete(project_orm)
            await self.session.flush()

            logger.info(f"Deleted project: id={project_id}, tasks={result.rowcount}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete project {project_id}: {e}", exc_info=True)
            raise

    async def _orm_to_pydantic_with_counts(self, project_orm: ProjectORM) -> Project:
        """Convert ProjectORM to Project with task counts populated."""
        project = Project(
            id=UUID(project_orm.id),
            name=project_orm.name,
            created_at=project_orm.created_at,
        )

        task_count = await self.session.scalar(
            select(func.count())
            .select_from(TaskORM)
            .where(TaskORM.project_id == project_orm.id)
        )
        completed_count = await self.session.scalar(
            select(func.count())
            .select_from(TaskORM)
            .where(TaskORM.project_id == project_orm.id)
            .where(TaskORM.status == TaskStatus.COMPLETED.value)
        )
        project.update_counts(task_count or 0, completed_count or 0)
        return project

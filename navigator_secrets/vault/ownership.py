"""
Ownership Boundary: the single gate between a principal and a project.

Projects are looked up by id and owner together, so a project owned by
somebody else cannot be told apart from one that does not exist.
"""
import logging

from ..exceptions import NotFoundError
from ..models import Project
from .repository import ProjectRepository

logger = logging.getLogger("navigator.secrets")


class OwnershipBoundary:
    """Confirms a principal owns a project before any secret is touched."""

    def __init__(self, projects: ProjectRepository):
        self._projects = projects

    async def authorize_project(self, principal_id: str, project_id: str) -> Project:
        """Return the project if ``principal_id`` owns it.

        Raises:
            NotFoundError: If the project is missing or owned by another principal.
        """
        project = await self._projects.get_owned(project_id, principal_id)
        if project is None:
            logger.debug(
                "Project access refused: user=%s project=%s", principal_id, project_id
            )
            raise NotFoundError("Project not found")
        return project

"""ProjectController: project management for the authenticated principal."""
import logging
from typing import Any, List, Optional

from ..exceptions import InvalidInputError
from ..models import Principal, Project
from .controller import require_principal, storage_errors
from .ownership import OwnershipBoundary
from .repository import ProjectRepository

logger = logging.getLogger("navigator.secrets")

MISSING = object()


def _clean_description(description: Any) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str):
        raise InvalidInputError("Project description must be a string")
    return description.strip() or None


class ProjectController:
    """Projects are always looked up through the ownership boundary."""

    def __init__(self, boundary: OwnershipBoundary, projects: ProjectRepository):
        self._boundary = boundary
        self._projects = projects

    async def list_projects(self, principal: Optional[Principal]) -> List[Project]:
        principal = require_principal(principal)
        with storage_errors("list projects", principal):
            return await self._projects.list_owned(principal.id)

    async def create_project(
        self, principal: Optional[Principal], name: Any, description: Any = None
    ) -> Project:
        principal = require_principal(principal)
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("Project name is required")
        description = _clean_description(description)
        with storage_errors("create project", principal):
            project = await self._projects.create(
                principal.id, name.strip(), description
            )
        logger.debug("Project create: user=%s project=%s", principal.id, project.id)
        return project

    async def get_project(
        self, principal: Optional[Principal], project_id: str
    ) -> Project:
        principal = require_principal(principal)
        with storage_errors("get project", principal, project_id):
            return await self._boundary.authorize_project(principal.id, project_id)

    async def update_project(
        self,
        principal: Optional[Principal],
        project_id: str,
        name: Any = MISSING,
        description: Any = MISSING,
    ) -> Project:
        """Rename a project or change its description.

        Arguments left as ``MISSING`` are not changed.
        """
        principal = require_principal(principal)
        changes = {}
        if name is not MISSING:
            if not isinstance(name, str) or not name.strip():
                raise InvalidInputError("Project name cannot be empty")
            changes["name"] = name.strip()
        if description is not MISSING:
            changes["description"] = _clean_description(description)
        with storage_errors("update project", principal, project_id):
            project = await self._boundary.authorize_project(principal.id, project_id)
            if not changes:
                return project
            return await self._projects.update(project.id, changes)

    async def delete_project(
        self, principal: Optional[Principal], project_id: str
    ) -> None:
        """Delete a project together with all of its secrets."""
        principal = require_principal(principal)
        with storage_errors("delete project", principal, project_id):
            project = await self._boundary.authorize_project(principal.id, project_id)
            await self._projects.delete(project.id)
        logger.debug("Project delete: user=%s project=%s", principal.id, project_id)

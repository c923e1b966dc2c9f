"""
Vault Repositories: Persistence contracts for projects and secrets.

``ProjectRepository`` and ``SecretRepository`` describe the queries the
controllers rely on; ``MemoryStore`` backs an in-process implementation of
both, used in development and tests. See ``postgres.py`` for the
asyncpg-backed implementation.

Secret repository calls assume the project was already authorized by the
ownership boundary. A secret that lives in another project is reported as
missing, exactly like one that does not exist.
"""
import uuid
import itertools
import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import datetime, timezone

from ..exceptions import ConflictError, InvalidInputError, NotFoundError
from ..models import CipherBundle, Project, SecretMetadata, SecretRecord

logger = logging.getLogger("navigator.secrets")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clean_key(key: str) -> str:
    """Trim a secret key name and check it is usable.

    Raises:
        InvalidInputError: If key is not a string or is empty after trimming.
    """
    if not isinstance(key, str) or not key.strip():
        raise InvalidInputError("Secret key cannot be empty")
    return key.strip()


class ProjectRepository(ABC):
    """Project persistence."""

    @abstractmethod
    async def list_owned(self, owner_id: str) -> List[Project]:
        """Projects of an owner, newest first."""

    @abstractmethod
    async def get_owned(self, project_id: str, owner_id: str) -> Optional[Project]:
        """Return the project only if both id and owner match."""

    @abstractmethod
    async def create(
        self, owner_id: str, name: str, description: Optional[str] = None
    ) -> Project:
        ...

    @abstractmethod
    async def update(
        self, project_id: str, changes: dict
    ) -> Project:
        """Apply ``name``/``description`` changes.

        Raises:
            NotFoundError: If the project does not exist.
        """

    @abstractmethod
    async def delete(self, project_id: str) -> None:
        """Delete a project and, with it, all of its secrets.

        Raises:
            NotFoundError: If the project does not exist.
        """


class SecretRepository(ABC):
    """Secret persistence, scoped to an authorized project."""

    @abstractmethod
    async def list(self, project_id: str) -> List[SecretMetadata]:
        """Secret metadata of a project, newest first. No bundles."""

    @abstractmethod
    async def create(
        self, project_id: str, key: str, bundle: CipherBundle
    ) -> SecretMetadata:
        """Insert a new secret.

        Raises:
            InvalidInputError: If key is empty after trimming.
            ConflictError: If the key is already used in the project.
        """

    @abstractmethod
    async def get(self, project_id: str, secret_id: str) -> SecretRecord:
        """Raises NotFoundError if the secret is not in the project."""

    @abstractmethod
    async def update_value(
        self, project_id: str, secret_id: str, bundle: CipherBundle
    ) -> SecretMetadata:
        """Replace the bundle of a secret. The key never changes.

        Raises:
            NotFoundError: If the secret is not in the project.
        """

    @abstractmethod
    async def delete(self, project_id: str, secret_id: str) -> None:
        """Raises NotFoundError if the secret is not in the project."""


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class MemoryStore:
    """
    In-memory tables for projects and secrets.
    Shared by the memory repositories so project deletion can cascade.
    """
    def __init__(self):
        self.projects: dict[str, Project] = {}
        self.secrets: dict[str, SecretRecord] = {}
        # insertion order, tie-breaker for identical timestamps
        self._sequence = itertools.count()
        self.order: dict[str, int] = {}

    def stamp(self, row_id: str) -> None:
        self.order[row_id] = next(self._sequence)

    def forget(self, row_id: str) -> None:
        self.order.pop(row_id, None)

    def newest_first(self, rows):
        return sorted(
            rows,
            key=lambda row: (row.created_at, self.order.get(row.id, 0)),
            reverse=True,
        )


class MemoryProjectRepository(ProjectRepository):
    def __init__(self, store: MemoryStore):
        self._store = store

    async def list_owned(self, owner_id: str) -> List[Project]:
        rows = [p for p in self._store.projects.values() if p.owner_id == owner_id]
        return [p.model_copy() for p in self._store.newest_first(rows)]

    async def get_owned(self, project_id: str, owner_id: str) -> Optional[Project]:
        project = self._store.projects.get(project_id)
        if project is None or project.owner_id != owner_id:
            return None
        return project.model_copy()

    async def create(
        self, owner_id: str, name: str, description: Optional[str] = None
    ) -> Project:
        now = utcnow()
        project = Project(
            id=new_id(),
            owner_id=owner_id,
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self._store.projects[project.id] = project
        self._store.stamp(project.id)
        return project.model_copy()

    async def update(self, project_id: str, changes: dict) -> Project:
        project = self._store.projects.get(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        allowed = {k: v for k, v in changes.items() if k in ("name", "description")}
        project = project.model_copy(update={**allowed, "updated_at": utcnow()})
        self._store.projects[project_id] = project
        return project.model_copy()

    async def delete(self, project_id: str) -> None:
        if self._store.projects.pop(project_id, None) is None:
            raise NotFoundError("Project not found")
        self._store.forget(project_id)
        orphans = [
            sid for sid, row in self._store.secrets.items()
            if row.project_id == project_id
        ]
        for sid in orphans:
            del self._store.secrets[sid]
            self._store.forget(sid)
        logger.debug(
            "Project deleted: project=%s cascade=%d secret(s)",
            project_id, len(orphans),
        )


class MemorySecretRepository(SecretRepository):
    def __init__(self, store: MemoryStore):
        self._store = store

    def _find(self, project_id: str, secret_id: str) -> SecretRecord:
        row = self._store.secrets.get(secret_id)
        if row is None or row.project_id != project_id:
            raise NotFoundError("Secret not found")
        return row

    async def list(self, project_id: str) -> List[SecretMetadata]:
        rows = [
            row for row in self._store.secrets.values()
            if row.project_id == project_id
        ]
        return [row.metadata() for row in self._store.newest_first(rows)]

    async def create(
        self, project_id: str, key: str, bundle: CipherBundle
    ) -> SecretMetadata:
        key = clean_key(key)
        # no await between check and insert: atomic within the event loop
        for row in self._store.secrets.values():
            if row.project_id == project_id and row.key == key:
                raise ConflictError()
        now = utcnow()
        row = SecretRecord(
            id=new_id(),
            project_id=project_id,
            key=key,
            bundle=bundle,
            created_at=now,
            updated_at=now,
        )
        self._store.secrets[row.id] = row
        self._store.stamp(row.id)
        return row.metadata()

    async def get(self, project_id: str, secret_id: str) -> SecretRecord:
        return self._find(project_id, secret_id).model_copy()

    async def update_value(
        self, project_id: str, secret_id: str, bundle: CipherBundle
    ) -> SecretMetadata:
        row = self._find(project_id, secret_id)
        row = row.model_copy(update={"bundle": bundle, "updated_at": utcnow()})
        self._store.secrets[secret_id] = row
        return row.metadata()

    async def delete(self, project_id: str, secret_id: str) -> None:
        self._find(project_id, secret_id)
        del self._store.secrets[secret_id]
        self._store.forget(secret_id)

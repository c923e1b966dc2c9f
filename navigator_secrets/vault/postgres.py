"""
Vault PostgreSQL storage: asyncpg-backed project and secret repositories.

Works with any asyncpg-compatible pool: ``pool.acquire()`` as an async
context manager yielding a connection with ``fetch``/``fetchrow``/``execute``.

The ``UNIQUE (project_id, key)`` constraint is what guarantees key uniqueness
under concurrent creates; the SELECT done before INSERT only gives the common
case a friendly error.

Security Note:
    Only ciphertext bundles reach the database. Never log the ``value`` column.
"""
import logging
from typing import Any, List, Optional

from ..exceptions import ConflictError, NotFoundError
from ..models import CipherBundle, Project, SecretMetadata, SecretRecord
from .bundle import parse_bundle, serialize_bundle
from .repository import ProjectRepository, SecretRepository, clean_key, new_id

logger = logging.getLogger("navigator.secrets")

UNIQUE_VIOLATION = "23505"

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

SCHEMA_DDL = """
CREATE SCHEMA IF NOT EXISTS vault;

CREATE TABLE IF NOT EXISTS vault.projects (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS projects_owner_idx ON vault.projects (owner_id);

CREATE TABLE IF NOT EXISTS vault.secrets (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES vault.projects (id) ON DELETE CASCADE,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT secrets_project_key_unique UNIQUE (project_id, key)
);
"""

_PROJECT_COLUMNS = "id, owner_id, name, description, created_at, updated_at"
_SECRET_COLUMNS = "id, key, created_at, updated_at"

_SELECT_OWNED_PROJECTS = f"""
SELECT {_PROJECT_COLUMNS}
FROM vault.projects
WHERE owner_id = $1
ORDER BY created_at DESC
"""

_SELECT_OWNED_PROJECT = f"""
SELECT {_PROJECT_COLUMNS}
FROM vault.projects
WHERE id = $1 AND owner_id = $2
"""

_INSERT_PROJECT = f"""
INSERT INTO vault.projects (id, owner_id, name, description)
VALUES ($1, $2, $3, $4)
RETURNING {_PROJECT_COLUMNS}
"""

_UPDATE_PROJECT = f"""
UPDATE vault.projects
SET name = COALESCE($2, name),
    description = CASE WHEN $3 THEN $4 ELSE description END,
    updated_at = NOW()
WHERE id = $1
RETURNING {_PROJECT_COLUMNS}
"""

_DELETE_PROJECT = """
DELETE FROM vault.projects WHERE id = $1 RETURNING id
"""

_SELECT_SECRETS = f"""
SELECT {_SECRET_COLUMNS}
FROM vault.secrets
WHERE project_id = $1
ORDER BY created_at DESC
"""

_SELECT_SECRET_BY_KEY = """
SELECT id FROM vault.secrets WHERE project_id = $1 AND key = $2
"""

_INSERT_SECRET = f"""
INSERT INTO vault.secrets (id, project_id, key, value)
VALUES ($1, $2, $3, $4)
RETURNING {_SECRET_COLUMNS}
"""

_SELECT_SECRET = f"""
SELECT {_SECRET_COLUMNS}, project_id, value
FROM vault.secrets
WHERE id = $1 AND project_id = $2
"""

_UPDATE_SECRET_VALUE = f"""
UPDATE vault.secrets
SET value = $3, updated_at = NOW()
WHERE id = $1 AND project_id = $2
RETURNING {_SECRET_COLUMNS}
"""

_DELETE_SECRET = """
DELETE FROM vault.secrets WHERE id = $1 AND project_id = $2 RETURNING id
"""


async def create_schema(db_pool: Any) -> None:
    """Create the vault schema and tables if they do not exist."""
    async with db_pool.acquire() as conn:
        await conn.execute(SCHEMA_DDL)
    logger.info("Vault schema ready")


def _is_unique_violation(err: Exception) -> bool:
    return getattr(err, "sqlstate", None) == UNIQUE_VIOLATION


def _project(row: Any) -> Project:
    return Project(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        description=row["description"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _metadata(row: Any) -> SecretMetadata:
    return SecretMetadata(
        id=row["id"],
        key=row["key"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PgProjectRepository(ProjectRepository):
    """Projects stored in ``vault.projects``."""

    def __init__(self, db_pool: Any):
        self._db = db_pool

    async def list_owned(self, owner_id: str) -> List[Project]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_OWNED_PROJECTS, owner_id)
        return [_project(row) for row in rows]

    async def get_owned(self, project_id: str, owner_id: str) -> Optional[Project]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_OWNED_PROJECT, project_id, owner_id)
        return _project(row) if row is not None else None

    async def create(
        self, owner_id: str, name: str, description: Optional[str] = None
    ) -> Project:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _INSERT_PROJECT, new_id(), owner_id, name, description,
            )
        return _project(row)

    async def update(self, project_id: str, changes: dict) -> Project:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _UPDATE_PROJECT,
                project_id,
                changes.get("name"),
                "description" in changes,
                changes.get("description"),
            )
        if row is None:
            raise NotFoundError("Project not found")
        return _project(row)

    async def delete(self, project_id: str) -> None:
        # secrets go with the project through ON DELETE CASCADE
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_DELETE_PROJECT, project_id)
        if row is None:
            raise NotFoundError("Project not found")


class PgSecretRepository(SecretRepository):
    """Secrets stored in ``vault.secrets``, bundle serialized in ``value``."""

    def __init__(self, db_pool: Any):
        self._db = db_pool

    async def list(self, project_id: str) -> List[SecretMetadata]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_SECRETS, project_id)
        return [_metadata(row) for row in rows]

    async def create(
        self, project_id: str, key: str, bundle: CipherBundle
    ) -> SecretMetadata:
        key = clean_key(key)
        async with self._db.acquire() as conn:
            existing = await conn.fetchrow(_SELECT_SECRET_BY_KEY, project_id, key)
            if existing is not None:
                raise ConflictError()
            try:
                row = await conn.fetchrow(
                    _INSERT_SECRET,
                    new_id(), project_id, key, serialize_bundle(bundle),
                )
            except Exception as err:
                if _is_unique_violation(err):
                    logger.debug(
                        "Concurrent create lost the race: project=%s key=%s",
                        project_id, key,
                    )
                    raise ConflictError() from err
                raise
        return _metadata(row)

    async def get(self, project_id: str, secret_id: str) -> SecretRecord:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_SECRET, secret_id, project_id)
        if row is None:
            raise NotFoundError("Secret not found")
        return SecretRecord(
            id=row["id"],
            project_id=row["project_id"],
            key=row["key"],
            bundle=parse_bundle(row["value"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def update_value(
        self, project_id: str, secret_id: str, bundle: CipherBundle
    ) -> SecretMetadata:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _UPDATE_SECRET_VALUE,
                secret_id, project_id, serialize_bundle(bundle),
            )
        if row is None:
            raise NotFoundError("Secret not found")
        return _metadata(row)

    async def delete(self, project_id: str, secret_id: str) -> None:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_DELETE_SECRET, secret_id, project_id)
        if row is None:
            raise NotFoundError("Secret not found")

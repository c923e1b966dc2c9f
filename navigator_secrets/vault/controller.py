"""
SecretController: Secret lifecycle orchestration.

Every operation walks the same stages, failing at the first one that rejects:

1. principal present, else ``UnauthenticatedError``
2. project ownership, via ``OwnershipBoundary`` (``NotFoundError``)
3. input validation (``InvalidInputError``), before any crypto or storage work
4. encryption on writes, decryption only when reading a single secret
5. repository call (``ConflictError`` / ``NotFoundError``)
6. response shaping: only ``get_secret`` carries a plaintext value

Unexpected storage failures are logged here and surfaced as an opaque
``InternalError``.

Security Note:
    Never log plaintext or ciphertext values. Only log key names, operations,
    project and user IDs.
"""
import logging
from contextlib import contextmanager
from typing import Any, List, Optional

from ..exceptions import (
    InternalError,
    InvalidInputError,
    UnauthenticatedError,
    VaultError,
)
from ..models import Principal, Project, SecretMetadata, SecretValue
from .crypto import VaultCipher
from .ownership import OwnershipBoundary
from .repository import SecretRepository, clean_key

logger = logging.getLogger("navigator.secrets")


def require_principal(principal: Optional[Principal]) -> Principal:
    """Reject calls that reached us without an authenticated principal."""
    if principal is None:
        raise UnauthenticatedError()
    return principal


@contextmanager
def storage_errors(operation: str, principal: Principal, project_id: str = None):
    """Turn unexpected storage exceptions into ``InternalError``.

    ``VaultError`` subclasses pass through untouched.
    """
    try:
        yield
    except VaultError:
        raise
    except Exception as err:
        logger.error(
            "Vault %s failed: user=%s project=%s: %s",
            operation, principal.id, project_id, err,
        )
        raise InternalError() from err


class SecretController:
    """Create, read, update and delete secrets of a principal's projects.

    Args:
        boundary: Ownership check run before every secret access.
        secrets: Secret storage.
        cipher: Master-key cipher, built once at startup.
    """

    def __init__(
        self,
        boundary: OwnershipBoundary,
        secrets: SecretRepository,
        cipher: VaultCipher,
    ):
        self._boundary = boundary
        self._secrets = secrets
        self._cipher = cipher

    async def _authorize(
        self, principal: Optional[Principal], project_id: str, operation: str
    ) -> tuple[Principal, Project]:
        principal = require_principal(principal)
        with storage_errors(operation, principal, project_id):
            project = await self._boundary.authorize_project(principal.id, project_id)
        return principal, project

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def list_secrets(
        self, principal: Optional[Principal], project_id: str
    ) -> List[SecretMetadata]:
        """List secret names of a project, newest first. Never decrypts."""
        principal, project = await self._authorize(principal, project_id, "list")
        with storage_errors("list", principal, project.id):
            return await self._secrets.list(project.id)

    async def create_secret(
        self, principal: Optional[Principal], project_id: str, key: Any, value: Any
    ) -> SecretMetadata:
        """Encrypt and store a new secret.

        Raises:
            InvalidInputError: If key or value is missing, empty or not a string.
            ConflictError: If the key already exists in the project.
        """
        principal, project = await self._authorize(principal, project_id, "create")
        if not key or not value:
            raise InvalidInputError("Secret key and value are required")
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidInputError("Secret key and value must be strings")
        key = clean_key(key)

        bundle = self._cipher.encrypt(value)
        with storage_errors("create", principal, project.id):
            secret = await self._secrets.create(project.id, key, bundle)
        logger.debug(
            "Vault create: user=%s project=%s key=%s",
            principal.id, project.id, key,
        )
        return secret

    async def get_secret(
        self, principal: Optional[Principal], project_id: str, secret_id: str
    ) -> SecretValue:
        """Return a secret with its decrypted value.

        Raises:
            NotFoundError: If the secret is not in the project.
            DecryptionError: If the stored bundle does not authenticate.
        """
        principal, project = await self._authorize(principal, project_id, "get")
        with storage_errors("get", principal, project.id):
            record = await self._secrets.get(project.id, secret_id)
        value = self._cipher.decrypt(record.bundle)
        return SecretValue(
            id=record.id,
            key=record.key,
            value=value,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def update_secret(
        self, principal: Optional[Principal], project_id: str, secret_id: str, value: Any
    ) -> SecretMetadata:
        """Re-encrypt a secret with a new value. The key stays the same."""
        principal, project = await self._authorize(principal, project_id, "update")
        if not value or not isinstance(value, str):
            raise InvalidInputError("Secret value is required and must be a string")

        bundle = self._cipher.encrypt(value)
        with storage_errors("update", principal, project.id):
            secret = await self._secrets.update_value(project.id, secret_id, bundle)
        logger.debug(
            "Vault update: user=%s project=%s key=%s",
            principal.id, project.id, secret.key,
        )
        return secret

    async def delete_secret(
        self, principal: Optional[Principal], project_id: str, secret_id: str
    ) -> None:
        principal, project = await self._authorize(principal, project_id, "delete")
        with storage_errors("delete", principal, project.id):
            await self._secrets.delete(project.id, secret_id)
        logger.debug(
            "Vault delete: user=%s project=%s secret=%s",
            principal.id, project.id, secret_id,
        )

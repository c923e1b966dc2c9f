"""Wiring of the vault components from a ``VaultConfig``."""
import logging
from typing import Any

from .config import VaultConfig
from .controller import SecretController
from .crypto import VaultCipher
from .ownership import OwnershipBoundary
from .postgres import PgProjectRepository, PgSecretRepository
from .projects import ProjectController
from .repository import MemoryProjectRepository, MemorySecretRepository, MemoryStore

logger = logging.getLogger("navigator.secrets")


def build_controllers(
    config: VaultConfig, db_pool: Any = None
) -> tuple[SecretController, ProjectController]:
    """Build the secret and project controllers sharing one cipher.

    Args:
        config: Validated vault configuration.
        db_pool: asyncpg-compatible pool; in-memory storage is used when None.

    Returns:
        Tuple of (SecretController, ProjectController).
    """
    if config.environment == "production" and config.is_default_key:
        raise RuntimeError("The development encryption key cannot be used in production")
    cipher = VaultCipher.from_config(config)
    if db_pool is None:
        store = MemoryStore()
        projects = MemoryProjectRepository(store)
        secrets = MemorySecretRepository(store)
        logger.info("Vault using in-memory storage")
    else:
        projects = PgProjectRepository(db_pool)
        secrets = PgSecretRepository(db_pool)
    boundary = OwnershipBoundary(projects)
    return (
        SecretController(boundary, secrets, cipher),
        ProjectController(boundary, projects),
    )

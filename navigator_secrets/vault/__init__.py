"""Secret Vault: project-scoped secrets encrypted at rest.

Security Note (Threat Model):
    One application-wide master key protects every secret. Plaintext exists
    in process memory only while a single secret is being written or read.
    Key rotation and hardware key storage are out of scope.
"""

from .config import VaultConfig, load_encryption_key
from .crypto import (
    VaultCipher,
    decrypt_value,
    encrypt_value,
    generate_key,
    normalize_key,
)
from .bundle import parse_bundle, serialize_bundle
from .ownership import OwnershipBoundary
from .repository import (
    MemoryProjectRepository,
    MemorySecretRepository,
    MemoryStore,
    ProjectRepository,
    SecretRepository,
)
from .postgres import PgProjectRepository, PgSecretRepository, create_schema
from .controller import SecretController
from .projects import ProjectController
from .factory import build_controllers

__all__ = [
    "VaultConfig",
    "load_encryption_key",
    "VaultCipher",
    "encrypt_value",
    "decrypt_value",
    "generate_key",
    "normalize_key",
    "parse_bundle",
    "serialize_bundle",
    "OwnershipBoundary",
    "ProjectRepository",
    "SecretRepository",
    "MemoryStore",
    "MemoryProjectRepository",
    "MemorySecretRepository",
    "PgProjectRepository",
    "PgSecretRepository",
    "create_schema",
    "SecretController",
    "ProjectController",
    "build_controllers",
]

"""Navigator Secrets.

Project-scoped key/value secrets, encrypted with AES-256-GCM before they
reach storage.
"""
from .version import (
    __title__,
    __description__,
    __version__,
    __author__,
    __author_email__,
    __license__,
)
from .exceptions import (
    VaultError,
    UnauthenticatedError,
    InvalidInputError,
    NotFoundError,
    ConflictError,
    DecryptionError,
    InternalError,
)
from .models import (
    Principal,
    Project,
    CipherBundle,
    SecretMetadata,
    SecretValue,
)

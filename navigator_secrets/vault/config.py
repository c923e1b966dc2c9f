"""
Vault Configuration: Master key loading and validated settings.

Reads the master key from the environment:
    ENCRYPTION_KEY = <passphrase, or 64-char hex key>
    ENVIRONMENT = development | production | ...

Security Note:
    Never log key material. The configured key is excluded from repr.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

from .crypto import normalize_key

logger = logging.getLogger("navigator.secrets")

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
ENVIRONMENT_ENV = "ENVIRONMENT"
DEVELOPMENT_KEY = "default-key-for-development"


def load_encryption_key(environment: str = "development") -> str:
    """Read the master secret from ENCRYPTION_KEY.

    Outside production a missing key falls back to the insecure development
    placeholder, with a warning.

    Raises:
        RuntimeError: If ENCRYPTION_KEY is unset and environment is production.
    """
    value = os.environ.get(ENCRYPTION_KEY_ENV)
    if value:
        return value
    if environment == "production":
        raise RuntimeError(
            f"{ENCRYPTION_KEY_ENV} environment variable is required in production"
        )
    logger.warning(
        "%s is not set, using the insecure development key", ENCRYPTION_KEY_ENV
    )
    return DEVELOPMENT_KEY


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    encryption_key: str = Field(repr=False)
    environment: str = Field(default="development")

    model_config = {"frozen": True}

    @field_validator("encryption_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Reject an empty master secret."""
        if not v:
            raise ValueError("encryption_key cannot be empty")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        return v.strip().lower() or "development"

    @property
    def is_default_key(self) -> bool:
        return self.encryption_key == DEVELOPMENT_KEY

    @property
    def master_key(self) -> bytes:
        """Normalized 32-byte key."""
        return normalize_key(self.encryption_key)

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        environment = os.environ.get(ENVIRONMENT_ENV, "development").strip().lower()
        return cls(
            encryption_key=load_encryption_key(environment),
            environment=environment or "development",
        )

"""
Data models for projects, secrets and ciphertext bundles.

Models serialize with camelCase aliases (``createdAt``, ``authTag`` ...) so
the JSON shapes stay compatible with payloads written by earlier versions of
the service.
"""
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_HEX_PATTERN = r"^[0-9a-fA-F]*$"


class Principal(BaseModel):
    """Authenticated caller, as resolved by the authentication layer."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    email: Optional[str] = None


class CipherBundle(BaseModel):
    """AES-GCM output: ciphertext, nonce and detached tag as hex strings.

    Persisted field names are the legacy ``encryptedValue``/``iv``/``authTag``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ciphertext: str = Field(alias="encryptedValue", pattern=_HEX_PATTERN)
    nonce: str = Field(alias="iv", pattern=_HEX_PATTERN)
    tag: str = Field(alias="authTag", pattern=_HEX_PATTERN)


class Project(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SecretMetadata(BaseModel):
    """Public view of a secret: never carries the value or its ciphertext."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    key: str
    created_at: datetime
    updated_at: datetime


class SecretValue(SecretMetadata):
    """Single-secret read response, with the decrypted value."""

    value: str


class SecretRecord(BaseModel):
    """Stored secret row as handed out by a repository."""

    id: str
    project_id: str
    key: str
    bundle: CipherBundle
    created_at: datetime
    updated_at: datetime

    def metadata(self) -> SecretMetadata:
        return SecretMetadata(
            id=self.id,
            key=self.key,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

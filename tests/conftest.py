"""Shared fixtures: in-memory vault wiring and principals."""
from types import SimpleNamespace

import pytest

from navigator_secrets.models import Principal
from navigator_secrets.vault import (
    MemoryProjectRepository,
    MemorySecretRepository,
    MemoryStore,
    OwnershipBoundary,
    ProjectController,
    SecretController,
    VaultCipher,
    normalize_key,
)

TEST_KEY = "test-key-123"


@pytest.fixture
def key():
    """32-byte key derived from the test passphrase."""
    return normalize_key(TEST_KEY)


@pytest.fixture
def cipher(key):
    return VaultCipher(key)


@pytest.fixture
def alice():
    return Principal(id="user-1", email="alice@example.com")


@pytest.fixture
def bob():
    return Principal(id="user-2", email="bob@example.com")


@pytest.fixture
def vault(cipher):
    """Controllers wired over a fresh in-memory store."""
    store = MemoryStore()
    project_repo = MemoryProjectRepository(store)
    secret_repo = MemorySecretRepository(store)
    boundary = OwnershipBoundary(project_repo)
    return SimpleNamespace(
        store=store,
        project_repo=project_repo,
        secret_repo=secret_repo,
        boundary=boundary,
        cipher=cipher,
        projects=ProjectController(boundary, project_repo),
        secrets=SecretController(boundary, secret_repo, cipher),
    )

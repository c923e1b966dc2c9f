"""
Navigator Secrets exceptions.

Every failure a caller can observe is a ``VaultError`` subclass carrying the
HTTP-equivalent ``status`` and a public ``message``. Messages are safe to
return to clients: they never contain key material, ciphertext or storage
internals.
"""


class VaultError(Exception):
    """Base class for all secret store errors."""

    status: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} status={self.status} message={self.message!r}>"


class UnauthenticatedError(VaultError):
    """No principal is attached to the call."""

    status = 401
    default_message = "User not authenticated"


class InvalidInputError(VaultError):
    """Missing, empty or wrongly typed input, rejected before side effects."""

    status = 400
    default_message = "Invalid input"


class NotFoundError(VaultError):
    """Project or secret is absent, or not owned by the caller."""

    status = 404
    default_message = "Not found"


class ConflictError(VaultError):
    """Secret key already used inside the project."""

    status = 409
    default_message = "Secret key already exists in this project"


class DecryptionError(VaultError):
    """Ciphertext bundle failed authentication or could not be parsed.

    Wrong key, tampered data and malformed bundles all raise this same
    error with the same message.
    """

    status = 500
    default_message = "decryption failed"


class InternalError(VaultError):
    """Unexpected failure (e.g. persistence unavailable)."""

    status = 500
    default_message = "Internal server error"

"""
Vault bundle codec: storage encoding of ciphertext bundles.

A bundle is stored as a JSON object::

    {"version": 1, "encryptedValue": "<hex>", "iv": "<hex>", "authTag": "<hex>"}

Field names and hex encoding are shared with bundles written by earlier
releases, which carry no ``version`` field and are read as version 1.
"""
from typing import Union

import orjson
from pydantic import ValidationError

from ..exceptions import DecryptionError
from ..models import CipherBundle

BUNDLE_VERSION = 1


def serialize_bundle(bundle: CipherBundle) -> str:
    """Encode a bundle for storage in a text column."""
    payload = {"version": BUNDLE_VERSION}
    payload.update(bundle.model_dump(by_alias=True))
    return orjson.dumps(payload).decode("utf-8")


def parse_bundle(raw: Union[str, bytes]) -> CipherBundle:
    """Decode and validate a stored bundle.

    Raises:
        DecryptionError: If the payload is not a valid bundle.
    """
    try:
        data = orjson.loads(raw)
    except (TypeError, orjson.JSONDecodeError):
        raise DecryptionError() from None
    if not isinstance(data, dict):
        raise DecryptionError()
    if data.pop("version", BUNDLE_VERSION) != BUNDLE_VERSION:
        raise DecryptionError()
    try:
        return CipherBundle.model_validate(data)
    except ValidationError:
        raise DecryptionError() from None

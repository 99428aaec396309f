import base64
import binascii
import json
import os
from typing import Annotated

import nacl.exceptions
import nacl.secret
import nacl.utils
from annotated_types import Len
from pydantic import BaseModel, ValidationError

# Value of a keyset environment variable that means "read the keyset from a file in the working directory".
LOCAL_KEYSET_SENTINEL = "local"


class KeysetMisconfiguredError(Exception):
    pass


class NaclKeyset(BaseModel):
    """Describes the active nacl encryption keys."""

    # The encryption keys. The first element in the list is the default encryption key. Decrypt operations will be
    # tried against all the keys until one succeeds.
    keys: Annotated[list[str], Len(min_length=1)]

    def with_new_key(self) -> "NaclKeyset":
        """Returns a new copy of the current instance with a new default key.

        Useful when rotating keys: tokens sealed under the previous default key remain readable.
        """
        return self.model_copy(update={"keys": [self._create_key(), *self.keys]})

    def serialize_json(self) -> str:
        return json.dumps(self.model_dump(), separators=(",", ":"), sort_keys=True)

    def serialize_base64(self) -> str:
        return base64.standard_b64encode(self.serialize_json().encode()).decode()

    @classmethod
    def deserialize_base64(cls, base64_keyset: str) -> "NaclKeyset":
        """Constructs a new keyset from the output of serialize_base64."""
        return cls.model_validate_json(base64.standard_b64decode(base64_keyset))

    @classmethod
    def _create_key(cls):
        key_bytes = nacl.utils.random(nacl.secret.Aead.KEY_SIZE)
        return base64.standard_b64encode(key_bytes).decode()

    @classmethod
    def create(cls) -> "NaclKeyset":
        """Creates a new keyset with a single key."""
        return cls(keys=[cls._create_key()])


def _read_local_keyset(local_keyset_filename: str) -> str:
    """Development environments may use a key in the local filesystem."""
    try:
        with open(local_keyset_filename) as f:
            return f.read().strip()
    except OSError as err:
        raise KeysetMisconfiguredError(f"The {local_keyset_filename} file cannot be read.") from err


def load_keyset_from_env(env_var: str, local_keyset_filename: str) -> NaclKeyset:
    """Reads a base64 keyset from env_var, or from local_keyset_filename when env_var is "local".

    Raises KeysetMisconfiguredError when the variable is unset or does not hold a keyset.
    """
    keys = os.environ.get(env_var, "")
    if not keys:
        raise KeysetMisconfiguredError(f"{env_var} is not set but is required.")
    if keys == LOCAL_KEYSET_SENTINEL:
        keys = _read_local_keyset(local_keyset_filename)
    try:
        return NaclKeyset.deserialize_base64(keys)
    except (binascii.Error, ValidationError) as err:
        raise KeysetMisconfiguredError(f"{env_var} is invalid") from err


class NaclAead:
    """XChaCha20-Poly1305 AEAD over every key in a keyset."""

    def __init__(self, keyset: NaclKeyset):
        self.boxes = [nacl.secret.Aead(base64.standard_b64decode(key)) for key in keyset.keys]

    def encrypt(self, pt: bytes, aad: bytes) -> bytes:
        """Encrypts using the current default (first) key."""
        return self.boxes[0].encrypt(pt, aad)

    def decrypt(self, ct: bytes, aad: bytes) -> bytes:
        """Decrypts ct with the available keys, in order.

        Raises:
            CryptoError when the value is not decryptable with any of the keys.
        """
        head, last = self.boxes[:-1], self.boxes[-1]
        for box in head:
            try:
                return box.decrypt(ct, aad)
            except nacl.exceptions.CryptoError:
                pass
        return last.decrypt(ct, aad)

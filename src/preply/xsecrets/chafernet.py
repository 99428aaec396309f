import base64
import binascii
import time
from typing import NamedTuple

import nacl.exceptions

from preply.xsecrets.nacl_keyset import NaclAead

# Number of seconds in the past that a token is allowed to be issued at.
_MAX_CLOCK_SKEW = 5

# Version number of the serialized payload.
_VERSION = 2

_HEADER_LENGTH = 1 + 8 + 8


class InvalidTokenError(Exception):
    pass


class OpenedToken(NamedTuple):
    plaintext: bytes
    issued_at: int
    expires_at: int


_urlsafe_decode_translation = bytes.maketrans(b"-_", b"+/")


def _safe_encode(encrypted: bytes) -> str:
    return base64.urlsafe_b64encode(encrypted).decode()


def _safe_decode(encoded: str) -> bytes:
    """Equivalent to base64.urlsafe_b64decode, except passes validate=True to b64decode()."""
    translated = encoded.encode().translate(_urlsafe_decode_translation)
    return base64.b64decode(translated, validate=True)


def _to_bytes(s: str | bytes):
    if isinstance(s, str):
        return s.encode()
    return s


class Chafernet:
    """Chafernet seals messages with authentication, an issue time and an expiry time.

    This differs from Fernet [1] in a few ways. Chafernet uses xchacha20 AEAD instead of AES128-CBC+HMAC. The
    timestamps are encrypted under the AEAD cipher rather than left plaintext in the token, and the expiry is fixed
    when the token is sealed rather than supplied by the reader. Key rotation comes from NaclAead. AAD may be provided.

    The sealed value is: BASE64URL ( ENCRYPT ( VERSION (1 byte) || ISSUED_AT (8 bytes) || EXPIRES_AT (8 bytes) ||
    PLAINTEXT ) )

    [1] https://cryptography.io/en/latest/fernet/
    """

    def __init__(self, aead: NaclAead) -> None:
        self.aead = aead

    def seal(self, plaintext: str | bytes, aad: bytes, ttl: int) -> str:
        """Seals plaintext at the current time; the token is readable for ttl seconds."""
        return self.seal_at_time(plaintext, aad, ttl=ttl, current_time=int(time.time()))

    def seal_at_time(self, plaintext: str | bytes, aad: bytes, *, ttl: int, current_time: int) -> str:
        if ttl < 0:
            raise ValueError("ttl must not be negative")
        serialized = (
            _VERSION.to_bytes(length=1, byteorder="big")
            + current_time.to_bytes(length=8, byteorder="big")
            + (current_time + ttl).to_bytes(length=8, byteorder="big")
            + _to_bytes(plaintext)
        )
        return _safe_encode(self.aead.encrypt(serialized, aad))

    def open(self, ciphertext: str, aad: bytes) -> OpenedToken:
        """Opens the token, checks its embedded expiry against the current time, and returns its contents."""
        return self.open_at_time(ciphertext, aad=aad, current_time=int(time.time()))

    def open_at_time(self, ciphertext: str, *, aad: bytes, current_time: int) -> OpenedToken:
        try:
            decoded = _safe_decode(ciphertext)
        except binascii.Error:
            raise InvalidTokenError from None
        try:
            plaintext = self.aead.decrypt(decoded, aad)
        except nacl.exceptions.CryptoError:
            raise InvalidTokenError from None
        if len(plaintext) < _HEADER_LENGTH or plaintext[0] != _VERSION:
            raise InvalidTokenError
        issued_at = int.from_bytes(plaintext[1:9], byteorder="big")
        expires_at = int.from_bytes(plaintext[9:17], byteorder="big")
        if expires_at < current_time:
            raise InvalidTokenError
        if current_time + _MAX_CLOCK_SKEW < issued_at:
            raise InvalidTokenError
        return OpenedToken(plaintext[_HEADER_LENGTH:], issued_at, expires_at)

import threading
import time
from dataclasses import dataclass

from pydantic import BaseModel, ValidationError

from preply.apiserver import flags
from preply.xsecrets.chafernet import Chafernet, InvalidTokenError
from preply.xsecrets.nacl_keyset import (
    KeysetMisconfiguredError,
    NaclAead,
    NaclKeyset,
    load_keyset_from_env,
)

# The session credential is prefixed with this string to visually distinguish it from other tokens.
SESSION_TOKEN_PREFIX = "ps_"


class SessionTokenCrypterMisconfiguredError(Exception):
    pass


class _SessionPayload(BaseModel):
    uid: str


@dataclass(frozen=True, slots=True)
class SessionClaims:
    """The contents of a verified session credential."""

    uid: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True, slots=True)
class SessionCredential:
    """A freshly minted session credential and the claims sealed inside it."""

    value: str
    principal_id: str
    expires_at: int


class SessionTokenCrypter:
    """Seals and opens session credentials.

    A credential is an encrypted and authenticated Chafernet token holding the principal id; its issue and expiry times
    are sealed with it. Only this server can read or produce credentials.

    The keyset is loaded by init(), which the server calls at startup. Later calls return the existing instance.
    """

    def __init__(
        self,
        ttl: int,
        *,
        keyset: NaclKeyset | None = None,
        keyset_env_var: str = flags.ENV_SESSION_TOKEN_KEYSET,
        local_keyset_filename: str = flags.LOCAL_SESSION_KEYSET_FILE,
    ):
        self._chafernet: Chafernet | None = None
        self._init_lock = threading.Lock()
        self._ttl = ttl
        self._keyset = keyset
        self._keyset_env_var = keyset_env_var
        self._local_keyset_filename = local_keyset_filename

    @property
    def ttl(self) -> int:
        return self._ttl

    def init(self) -> Chafernet:
        """Loads the keyset on the first call. Raises SessionTokenCrypterMisconfiguredError if it is unusable."""
        with self._init_lock:
            if not self._chafernet:
                keyset = self._keyset
                if keyset is None:
                    try:
                        keyset = load_keyset_from_env(self._keyset_env_var, self._local_keyset_filename)
                    except KeysetMisconfiguredError as err:
                        raise SessionTokenCrypterMisconfiguredError(str(err)) from err
                self._chafernet = Chafernet(NaclAead(keyset))
            return self._chafernet

    def encrypt(self, uid: str) -> SessionCredential:
        return self.encrypt_at_time(uid, int(time.time()))

    def encrypt_at_time(self, uid: str, current_time: int) -> SessionCredential:
        payload = _SessionPayload(uid=uid).model_dump_json().encode()
        sealed = self.init().seal_at_time(payload, b"", ttl=self._ttl, current_time=current_time)
        return SessionCredential(
            value=SESSION_TOKEN_PREFIX + sealed,
            principal_id=uid,
            expires_at=current_time + self._ttl,
        )

    def decrypt(self, token: str) -> SessionClaims:
        return self.decrypt_at_time(token, int(time.time()))

    def decrypt_at_time(self, token: str, current_time: int) -> SessionClaims:
        """Returns the claims of a valid credential. Raises InvalidTokenError otherwise."""
        if not token.startswith(SESSION_TOKEN_PREFIX):
            raise InvalidTokenError
        opened = self.init().open_at_time(token[len(SESSION_TOKEN_PREFIX) :], aad=b"", current_time=current_time)
        try:
            payload = _SessionPayload.model_validate_json(opened.plaintext)
        except ValidationError:
            raise InvalidTokenError from None
        return SessionClaims(uid=payload.uid, issued_at=opened.issued_at, expires_at=opened.expires_at)

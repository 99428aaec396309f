from loguru import logger

from preply.apiserver.routers.auth.principal import Principal
from preply.apiserver.routers.auth.session_cookie import SessionCookie
from preply.apiserver.routers.auth.session_token_crypter import (
    SessionTokenCrypter,
    SessionTokenCrypterMisconfiguredError,
)
from preply.apiserver.users.user_directory import UserDirectory
from preply.xsecrets.chafernet import InvalidTokenError


class SessionResolver:
    """Resolves the principal of the current request from its session cookie.

    An absent, invalid or expired credential, and a credential whose user is no longer in the directory, all resolve
    to None. Nothing raised while resolving reaches the caller.
    """

    def __init__(self, cookie: SessionCookie, crypter: SessionTokenCrypter, directory: UserDirectory):
        self.cookie = cookie
        self.crypter = crypter
        self.directory = directory

    async def current_principal(self) -> Principal | None:
        credential = self.cookie.load()
        if not credential:
            return None

        try:
            claims = self.crypter.decrypt(credential)
        except InvalidTokenError:
            logger.debug("Ignoring invalid or expired session credential")
            return None
        except SessionTokenCrypterMisconfiguredError:
            logger.exception("Session credentials cannot be verified")
            return None

        try:
            user = await self.directory.get(claims.uid)
        except Exception:  # noqa: BLE001
            logger.exception(f"[current_principal] Failed to look up principal {claims.uid}")
            return None
        if user is None:
            logger.info(f"Session refers to principal {claims.uid}, who is not in the user directory")
            return None
        return Principal.from_user(user)

    async def is_authenticated(self) -> bool:
        return await self.current_principal() is not None

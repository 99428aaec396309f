from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from loguru import logger

from preply.apiserver import constants, flags
from preply.apiserver.dependencies import user_directory_dependency
from preply.apiserver.routers.auth.identity_verifier import (
    IdentityProviderKeys,
    IdentityVerifier,
    ServerAppearsOfflineError,
    get_identity_provider_keys,
)
from preply.apiserver.routers.auth.principal import Principal
from preply.apiserver.routers.auth.session_cookie import SessionCookie
from preply.apiserver.routers.auth.session_resolver import SessionResolver
from preply.apiserver.routers.auth.session_token_crypter import SessionTokenCrypter
from preply.apiserver.users.user_directory import UserDirectory

# The process-wide session crypter. Its keyset is loaded by init() at startup.
SESSION_CRYPTER = SessionTokenCrypter(ttl=constants.SESSION_TTL_SECONDS)


def session_crypter_dependency() -> SessionTokenCrypter:
    return SESSION_CRYPTER


def identity_keys_loader_dependency():
    """Returns the coroutine function that provides the identity provider's signing keys."""
    return get_identity_provider_keys


def identity_verifier_dependency(
    crypter: Annotated[SessionTokenCrypter, Depends(session_crypter_dependency)],
    keys_loader: Annotated[Callable[[], Awaitable[IdentityProviderKeys]], Depends(identity_keys_loader_dependency)],
) -> IdentityVerifier:
    return IdentityVerifier(crypter, keys_loader=keys_loader)


def session_cookie_dependency(request: Request, response: Response) -> SessionCookie:
    return SessionCookie(request, response)


def session_resolver_dependency(
    cookie: Annotated[SessionCookie, Depends(session_cookie_dependency)],
    crypter: Annotated[SessionTokenCrypter, Depends(session_crypter_dependency)],
    directory: Annotated[UserDirectory, Depends(user_directory_dependency)],
) -> SessionResolver:
    return SessionResolver(cookie, crypter, directory)


async def current_principal_dependency(
    resolver: Annotated[SessionResolver, Depends(session_resolver_dependency)],
) -> Principal | None:
    """Returns the signed-in Principal, or None for anonymous requests."""
    return await resolver.current_principal()


async def require_principal(
    principal: Annotated[Principal | None, Depends(current_principal_dependency)],
) -> Principal:
    """Dependency for endpoints that are only available to signed-in users. Raises a 401 for anonymous requests."""
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in.")
    return principal


def init():
    """Validates the process-wide authentication state. Raises informative exceptions on misconfiguration."""
    SESSION_CRYPTER.init()
    IdentityVerifier(SESSION_CRYPTER).validate_configuration()


def disable(app):
    """Disables interaction with internet-dependent authentication resources."""

    async def offline_keys_loader():
        raise ServerAppearsOfflineError("Identity provider access is disabled.")

    app.dependency_overrides[identity_keys_loader_dependency] = lambda: offline_keys_loader


def setup(app):
    """Configures FastAPI dependencies for authentication."""

    # If we are not in airplane mode, there is no setup to do.
    if not flags.AIRPLANE_MODE:
        return

    logger.warning("AIRPLANE_MODE is set.")

    disable(app)

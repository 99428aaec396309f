"""Verifies identity provider ID tokens and exchanges them for session credentials."""

import asyncio
import datetime
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from jose import JWTError, jwt
from loguru import logger

from preply.apiserver import flags
from preply.apiserver.routers.auth.session_token_crypter import SessionCredential, SessionTokenCrypter

# Set TESTING_TOKENS_ENABLED to allow statically defined ID tokens to skip the JWT validation.
AIRPLANE_TOKEN = "airplane-mode-token"
TESTING_TOKENS_ENABLED = False


class IdentityTokenInvalidError(Exception):
    """Raised when an ID token cannot be validated. The sign-in or sign-up attempt fails."""


class IdentityVerifierMisconfiguredError(Exception):
    pass


class IdentityProviderError(Exception):
    pass


class ServerAppearsOfflineError(Exception):
    pass


@dataclass(frozen=True)
class IdentityClaims:
    """Information extracted from a validated ID token."""

    sub: str  # subject identifier; becomes the principal id
    email: str
    name: str
    iss: str  # issuer
    iat: int  # issued-at timestamp


TESTING_USER_ID = "testing-user"
TESTING_EMAIL = "testing@example.com"
TESTING_TOKEN = secrets.token_urlsafe(32)
OTHER_TESTING_USER_ID = "other-testing-user"
OTHER_TESTING_EMAIL = "other-testing@example.com"
OTHER_TESTING_TOKEN = secrets.token_urlsafe(32)
TESTING_TOKENS = {
    AIRPLANE_TOKEN: IdentityClaims(
        sub="airplane", email="airplane@example.com", name="Airplane", iss="airplane", iat=0
    ),
    TESTING_TOKEN: IdentityClaims(sub=TESTING_USER_ID, email=TESTING_EMAIL, name="Testing", iss="testing", iat=0),
    OTHER_TESTING_TOKEN: IdentityClaims(
        sub=OTHER_TESTING_USER_ID, email=OTHER_TESTING_EMAIL, name="Other Testing", iss="testing", iat=0
    ),
}


@dataclass
class IdentityProviderKeys:
    last_refreshed: datetime.datetime
    jwks: dict

    def should_refresh(self):
        return self.last_refreshed < datetime.datetime.now() - datetime.timedelta(hours=1)


# _provider_keys and _provider_keys_stampede_lock are managed by get_identity_provider_keys().
_provider_keys: IdentityProviderKeys | None = None
_provider_keys_stampede_lock = asyncio.Lock()


async def _fetch_object_200(client: httpx.AsyncClient, url: str):
    """Fetches a URL using the given httpx client, parses the response as a JSON dictionary.

    Raises IdentityProviderError when the response is not a 200 status or when the response is not a dict.
    """
    response = await client.get(url)
    if response.status_code != 200:
        raise IdentityProviderError(f"Fetching {url} failed with an unexpected status code: {response.status_code}")
    parsed = response.json()
    if not isinstance(parsed, dict):
        raise IdentityProviderError(f"{url} returned a non-dictionary response")
    return parsed


async def get_identity_provider_keys() -> IdentityProviderKeys:
    """Fetch and cache the identity provider's signing keys."""
    global _provider_keys
    # When keys are fresh, we can use them immediately.
    if _provider_keys and not _provider_keys.should_refresh():
        return _provider_keys

    # Send only one outbound request even if there are many waiting.
    async with _provider_keys_stampede_lock:
        if _provider_keys and not _provider_keys.should_refresh():
            return _provider_keys

        logger.info(f"Fetching identity provider keys from {flags.IDENTITY_JWKS_URL}")
        try:
            transport = httpx.AsyncHTTPTransport(retries=2)
            async with httpx.AsyncClient(transport=transport, timeout=15.0) as client:
                jwks = await _fetch_object_200(client, flags.IDENTITY_JWKS_URL)
                if not jwks.get("keys"):
                    raise IdentityProviderError("JWKS response does not contain keys in expected format")
                _provider_keys = IdentityProviderKeys(last_refreshed=datetime.datetime.now(), jwks=jwks)
        except httpx.ConnectError as exc:
            raise ServerAppearsOfflineError("We appear to be offline.") from exc
        else:
            return _provider_keys


class IdentityVerifier:
    """Validates RS256 ID tokens against the identity provider's keys and mints session credentials."""

    def __init__(
        self,
        crypter: SessionTokenCrypter,
        *,
        issuer: str | None = None,
        audience: str | None = None,
        keys_loader: Callable[[], Awaitable[IdentityProviderKeys]] = get_identity_provider_keys,
    ):
        self.crypter = crypter
        self.issuer = flags.IDENTITY_ISSUER if issuer is None else issuer
        self.audience = flags.IDENTITY_AUDIENCE if audience is None else audience
        self.keys_loader = keys_loader

    def validate_configuration(self):
        """Raises informative exceptions if the settings critical for verifying ID tokens are not set."""
        if flags.AIRPLANE_MODE:
            return
        if not self.audience:
            raise IdentityVerifierMisconfiguredError(
                f"{flags.ENV_FIREBASE_PROJECT_ID} (or PREPLY_IDENTITY_AUDIENCE) environment variable is not set."
            )
        if not self.issuer:
            raise IdentityVerifierMisconfiguredError("PREPLY_IDENTITY_ISSUER environment variable is not set.")

    async def verify(self, identity_token: str) -> IdentityClaims:
        """Returns the claims of a valid ID token. Raises IdentityTokenInvalidError otherwise."""
        if TESTING_TOKENS_ENABLED and identity_token in TESTING_TOKENS:
            return TESTING_TOKENS[identity_token]
        if flags.AIRPLANE_MODE and identity_token == AIRPLANE_TOKEN:
            return TESTING_TOKENS[AIRPLANE_TOKEN]
        try:
            header = jwt.get_unverified_header(identity_token)
        except JWTError as e:
            raise IdentityTokenInvalidError(f"Invalid ID token: {e}") from e
        try:
            keys = await self.keys_loader()
        except (IdentityProviderError, ServerAppearsOfflineError, httpx.HTTPError) as e:
            logger.error(f"Identity provider keys are unavailable: {e}")
            raise IdentityTokenInvalidError("Unable to verify ID token") from e
        key = next((jwk for jwk in keys.jwks["keys"] if jwk.get("kid") == header.get("kid")), None)
        if not key:
            raise IdentityTokenInvalidError("Unable to find appropriate key")
        try:
            decoded = jwt.decode(
                identity_token,
                key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require_iss": True,
                    "require_aud": True,
                    "require_iat": True,
                    "require_exp": True,
                    "require_sub": True,
                    "verify_at_hash": False,
                },
            )
        except JWTError as e:
            raise IdentityTokenInvalidError(f"Invalid ID token: {e}") from e
        if not decoded["sub"]:
            raise IdentityTokenInvalidError("ID token has an empty subject")
        return IdentityClaims(
            sub=decoded["sub"],
            email=decoded.get("email", ""),
            name=decoded.get("name", ""),
            iss=decoded["iss"],
            iat=decoded["iat"],
        )

    def issue_session(self, claims: IdentityClaims) -> SessionCredential:
        """Seals a session credential for an already verified identity."""
        return self.crypter.encrypt(claims.sub)

    async def mint_session(self, identity_token: str) -> SessionCredential:
        """Verifies identity_token and returns a session credential for its subject."""
        return self.issue_session(await self.verify(identity_token))


def enable_testing_tokens():
    """Configures the authentication system to enable tokens used in unit tests."""
    global TESTING_TOKENS_ENABLED
    TESTING_TOKENS_ENABLED = True

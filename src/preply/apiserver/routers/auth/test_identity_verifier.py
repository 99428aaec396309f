import datetime
import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from preply.apiserver.routers.auth import identity_verifier
from preply.apiserver.routers.auth.identity_verifier import (
    TESTING_TOKEN,
    TESTING_USER_ID,
    IdentityProviderError,
    IdentityProviderKeys,
    IdentityTokenInvalidError,
    IdentityVerifier,
    IdentityVerifierMisconfiguredError,
)
from preply.apiserver.routers.auth.session_token_crypter import SessionTokenCrypter
from preply.xsecrets.nacl_keyset import NaclKeyset

PROJECT_ID = "preply-unit-test"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"
KEY_ID = "test-key-1"


def make_rsa_pem_pair() -> tuple[bytes, bytes]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@pytest.fixture(name="rsa_keys", scope="module")
def fixture_rsa_keys():
    return make_rsa_pem_pair()


@pytest.fixture(name="verifier")
def fixture_verifier(rsa_keys):
    _, public_pem = rsa_keys
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KEY_ID

    async def keys_loader():
        return IdentityProviderKeys(last_refreshed=datetime.datetime.now(), jwks={"keys": [public_jwk]})

    crypter = SessionTokenCrypter(60, keyset=NaclKeyset.create())
    return IdentityVerifier(crypter, issuer=ISSUER, audience=PROJECT_ID, keys_loader=keys_loader)


def make_id_token(private_pem: bytes, *, kid: str = KEY_ID, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": ISSUER,
        "aud": PROJECT_ID,
        "sub": "firebase-uid-1",
        "iat": now,
        "exp": now + 3600,
        "email": "ada@example.com",
        "name": "Ada",
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem.decode(), algorithm="RS256", headers={"kid": kid})


async def test_verify_valid_token(verifier, rsa_keys):
    claims = await verifier.verify(make_id_token(rsa_keys[0]))
    assert claims.sub == "firebase-uid-1"
    assert claims.email == "ada@example.com"
    assert claims.name == "Ada"
    assert claims.iss == ISSUER


async def test_mint_session_embeds_subject(verifier, rsa_keys):
    credential = await verifier.mint_session(make_id_token(rsa_keys[0]))
    assert credential.principal_id == "firebase-uid-1"
    assert verifier.crypter.decrypt(credential.value).uid == "firebase-uid-1"


@pytest.mark.parametrize(
    "overrides",
    [
        {"exp": int(time.time()) - 60},
        {"aud": "another-project"},
        {"iss": "https://securetoken.google.com/another-project"},
        {"sub": ""},
    ],
    ids=["expired", "wrong-audience", "wrong-issuer", "empty-subject"],
)
async def test_verify_rejects_bad_claims(verifier, rsa_keys, overrides):
    with pytest.raises(IdentityTokenInvalidError):
        await verifier.verify(make_id_token(rsa_keys[0], **overrides))


async def test_verify_rejects_unknown_key_id(verifier, rsa_keys):
    with pytest.raises(IdentityTokenInvalidError, match="appropriate key"):
        await verifier.verify(make_id_token(rsa_keys[0], kid="unknown"))


async def test_verify_rejects_other_signer(verifier):
    other_private_pem, _ = make_rsa_pem_pair()
    with pytest.raises(IdentityTokenInvalidError):
        await verifier.verify(make_id_token(other_private_pem))


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
async def test_verify_rejects_garbage(verifier, token):
    with pytest.raises(IdentityTokenInvalidError):
        await verifier.verify(token)


async def test_verify_when_keys_are_unavailable(rsa_keys):
    async def failing_loader():
        raise IdentityProviderError("boom")

    crypter = SessionTokenCrypter(60, keyset=NaclKeyset.create())
    verifier = IdentityVerifier(crypter, issuer=ISSUER, audience=PROJECT_ID, keys_loader=failing_loader)
    with pytest.raises(IdentityTokenInvalidError):
        await verifier.verify(make_id_token(rsa_keys[0]))


async def test_testing_tokens(verifier, monkeypatch):
    monkeypatch.setattr(identity_verifier, "TESTING_TOKENS_ENABLED", True)
    assert (await verifier.verify(TESTING_TOKEN)).sub == TESTING_USER_ID
    monkeypatch.setattr(identity_verifier, "TESTING_TOKENS_ENABLED", False)
    with pytest.raises(IdentityTokenInvalidError):
        await verifier.verify(TESTING_TOKEN)


def test_validate_configuration(monkeypatch):
    monkeypatch.setattr(identity_verifier.flags, "AIRPLANE_MODE", False)
    crypter = SessionTokenCrypter(60, keyset=NaclKeyset.create())
    IdentityVerifier(crypter, issuer=ISSUER, audience=PROJECT_ID).validate_configuration()
    with pytest.raises(IdentityVerifierMisconfiguredError):
        IdentityVerifier(crypter, issuer=ISSUER, audience="").validate_configuration()
    with pytest.raises(IdentityVerifierMisconfiguredError):
        IdentityVerifier(crypter, issuer="", audience=PROJECT_ID).validate_configuration()

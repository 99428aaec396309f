"""conftest configures FastAPI dependency injection for testing and also does some setup before tests in
this module are run."""

import os

import pytest
from starlette.testclient import TestClient

from preply.apiserver import database, flags
from preply.apiserver.main import app
from preply.apiserver.routers.auth import auth_dependencies, identity_verifier
from preply.apiserver.store.memory_store import MemoryDocumentStore
from preply.xsecrets.nacl_keyset import NaclKeyset

TESTING_PROJECT_ID = "preply-testing"


@pytest.fixture(scope="session", autouse=True)
def fixture_override_app_dependencies():
    """Configures FastAPI dependencies and process-wide settings for testing.

    This uses FastAPI's dependency override mechanism: https://fastapi.tiangolo.com/advanced/testing-dependencies/#use-the-appdependency_overrides-attribute
    """
    os.environ[flags.ENV_SESSION_TOKEN_KEYSET] = NaclKeyset.create().serialize_base64()
    flags.IDENTITY_AUDIENCE = TESTING_PROJECT_ID
    flags.IDENTITY_ISSUER = f"https://securetoken.google.com/{TESTING_PROJECT_ID}"

    auth_dependencies.disable(app)
    identity_verifier.enable_testing_tokens()


@pytest.fixture(name="store")
def fixture_store():
    """Returns an empty in-memory document store. The client fixture installs it as the process-wide store."""
    return MemoryDocumentStore()


@pytest.fixture(name="client")
def fixture_client(store):
    """Returns a FastAPI TestClient backed by the store fixture.

    TestClient manages the lifecycle of the app and will invoke the FastAPI app and router @lifespan methods.
    """
    database.init(store)
    with TestClient(app) as client:
        yield client

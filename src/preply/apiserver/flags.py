"""Flags describes values that are read from the environment."""

import enum
import os

from preply.apiserver import constants


def is_dev_environment():
    return os.environ.get("ENVIRONMENT", "") in {"dev", ""}


def is_production_environment():
    return os.environ.get("ENVIRONMENT", "") == "production"


def is_railway() -> bool:
    return os.environ.get("RAILWAY_SERVICE_NAME", "") != ""


def truthy_env(env_var: str):
    """Return True if the environment variable is "true" or "1", or False otherwise."""
    return os.environ.get(env_var, "").lower() in {"true", "1"}


def int_env(env_var: str, default: int) -> int:
    value = os.environ.get(env_var, "")
    if not value:
        return default
    return int(value)


# AIRPLANE_MODE replaces the document store with an in-memory store and accepts a fixed identity token instead of
# verifying ID tokens against the identity provider.
AIRPLANE_MODE = truthy_env("AIRPLANE_MODE")

# Flags configuring ID token verification. The defaults describe Firebase Authentication ID tokens; each may be
# overridden to point at another OIDC provider within the same trust domain.
ENV_FIREBASE_PROJECT_ID = "PREPLY_FIREBASE_PROJECT_ID"
FIREBASE_PROJECT_ID = os.environ.get(ENV_FIREBASE_PROJECT_ID, "")
FIREBASE_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
IDENTITY_JWKS_URL = os.environ.get("PREPLY_IDENTITY_JWKS_URL", FIREBASE_JWKS_URL)
IDENTITY_ISSUER = os.environ.get(
    "PREPLY_IDENTITY_ISSUER",
    f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}" if FIREBASE_PROJECT_ID else "",
)
IDENTITY_AUDIENCE = os.environ.get("PREPLY_IDENTITY_AUDIENCE", FIREBASE_PROJECT_ID)

# PREPLY_SESSION_TOKEN_KEYSET contains a keyset for encrypting session credentials. This is generated using the
# `preply-cli create-session-keyset` command. If set to "local", we will read from LOCAL_SESSION_KEYSET_FILE.
ENV_SESSION_TOKEN_KEYSET = "PREPLY_SESSION_TOKEN_KEYSET"
LOCAL_SESSION_KEYSET_FILE = ".preply_session_token_keyset"

DISCOVERABLE_LIMIT = int_env("PREPLY_DISCOVERABLE_LIMIT", constants.DEFAULT_DISCOVERABLE_LIMIT)

# Origins allowed to make credentialed (cookie-bearing) cross-origin requests.
ALLOWED_ORIGINS = [
    origin.strip() for origin in os.environ.get("PREPLY_ALLOWED_ORIGINS", "").split(",") if origin.strip()
]

PUBLISH_ALL_DOCS = truthy_env("PREPLY_PUBLISH_ALL_DOCS")

# Hosting providers may set hosted database URL as DATABASE_URL, so we use the same.
DATABASE_URL = os.environ.get("DATABASE_URL")

LOG_SQL_APP_DB = truthy_env("LOG_SQL_APP_DB")


class LogFormat(enum.StrEnum):
    FRIENDLY = "friendly"
    STRUCTURED_RAILWAY = "structured_railway"
    DEFAULT = "default"

    @classmethod
    def from_env(cls):
        if is_railway():
            return LogFormat.STRUCTURED_RAILWAY
        if is_dev_environment():
            return LogFormat.FRIENDLY
        return LogFormat.DEFAULT


LOG_FORMAT = LogFormat.from_env()

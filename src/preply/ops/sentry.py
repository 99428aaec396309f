"""Error reporting to Sentry.

setup() is a no-op unless SENTRY_DSN is set. Events are scrubbed of session credentials, ID tokens and user contact
details before they leave the process.
"""

import os

import sentry_sdk
from loguru import logger
from sentry_sdk.scrubber import DEFAULT_DENYLIST, DEFAULT_PII_DENYLIST, EventScrubber

from preply.apiserver import constants, flags

# Keys whose values never leave the process.
CREDENTIAL_KEYS = [
    constants.SESSION_COOKIE_NAME,
    "id_token",
    "credential",
    "keyset",
    flags.ENV_SESSION_TOKEN_KEYSET.lower(),
    "database_url",
    "dsn",
]

# Directory fields that identify a person.
USER_FIELD_KEYS = ["email", "name"]


def make_event_scrubber() -> EventScrubber:
    return EventScrubber(
        denylist=[*DEFAULT_DENYLIST, *CREDENTIAL_KEYS],
        pii_denylist=[*DEFAULT_PII_DENYLIST, *USER_FIELD_KEYS],
    )


def setup():
    """Configures Sentry if SENTRY_DSN is present."""
    sentry_dsn = os.environ.get("SENTRY_DSN")
    if not sentry_dsn:
        return
    environment = os.environ.get("ENVIRONMENT") or "dev"
    logger.info(f"Reporting errors to Sentry (environment={environment})")

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        traces_sample_rate=float(os.environ.get("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
        event_scrubber=make_event_scrubber(),
    )

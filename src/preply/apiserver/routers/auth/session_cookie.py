from fastapi import Request, Response

from preply.apiserver import constants, flags


def session_cookie_kwargs(value: str) -> dict:
    """Returns the Response.set_cookie() arguments for storing a session credential."""
    return {
        "key": constants.SESSION_COOKIE_NAME,
        "value": value,
        "max_age": constants.SESSION_TTL_SECONDS,
        "httponly": True,
        "secure": flags.is_production_environment(),
        "samesite": "lax",
        "path": "/",
    }


class SessionCookie:
    """Stores the session credential in an HTTP-only cookie and reads it back.

    Values are not inspected here; SessionResolver decides whether a stored credential is valid.
    """

    def __init__(self, request: Request, response: Response):
        self.request = request
        self.response = response

    def store(self, credential: str):
        self.response.set_cookie(**session_cookie_kwargs(credential))

    def load(self) -> str | None:
        return self.request.cookies.get(constants.SESSION_COOKIE_NAME) or None

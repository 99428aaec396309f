from typing import Annotated

from pydantic import BaseModel, Field

from preply.apiserver.routers.auth.principal import Principal


class SignUpRequest(BaseModel):
    """Registers the identity in id_token in the user directory."""

    id_token: Annotated[str, Field(min_length=1, description="ID token issued by the identity provider.")]
    name: Annotated[str, Field(min_length=1, max_length=200)]
    email: Annotated[str, Field(min_length=3, max_length=320)]


class SignInRequest(BaseModel):
    email: Annotated[str, Field(min_length=3, max_length=320)]
    id_token: Annotated[str, Field(min_length=1, description="ID token issued by the identity provider.")]


class AuthActionResponse(BaseModel):
    """The outcome of a sign-up or sign-in attempt. message is suitable for display to the user."""

    success: bool
    message: str


# CallerIdentityResponse exposes only the Principal; the session credential itself never leaves the cookie.
class CallerIdentityResponse(BaseModel):
    """Describes the caller's identity in a format suitable for use in the frontend."""

    user: Principal | None
    is_authenticated: bool

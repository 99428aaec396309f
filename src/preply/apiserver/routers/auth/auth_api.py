"""Sign-up, sign-in and caller identity endpoints."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Response, status
from loguru import logger

from preply.apiserver import constants
from preply.apiserver.dependencies import user_directory_dependency
from preply.apiserver.routers.auth.auth_api_types import (
    AuthActionResponse,
    CallerIdentityResponse,
    SignInRequest,
    SignUpRequest,
)
from preply.apiserver.routers.auth.auth_dependencies import (
    current_principal_dependency,
    identity_verifier_dependency,
    session_cookie_dependency,
)
from preply.apiserver.routers.auth.identity_verifier import (
    IdentityClaims,
    IdentityTokenInvalidError,
    IdentityVerifier,
)
from preply.apiserver.routers.auth.principal import Principal
from preply.apiserver.routers.auth.session_cookie import SessionCookie
from preply.apiserver.store.document_store import RecordDecodeError, StoreError
from preply.apiserver.users.user_directory import CreateUserOutcome, UserDirectory

MESSAGE_ACCOUNT_CREATED = "Account created successfully. Please sign in."
MESSAGE_USER_EXISTS = "User already exists. Please sign in instead."
MESSAGE_CREATE_FAILED = "Failed to create user."
MESSAGE_SIGNED_IN = "Signed in successfully."
MESSAGE_NO_SUCH_USER = "User does not exist. Create an account instead."
MESSAGE_SIGN_IN_FAILED = "Failed to log into an account. Please try again."


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(f"Starting router: {__name__} (prefix={router.prefix})")
    yield


router = APIRouter(
    lifespan=lifespan,
    prefix=constants.API_PREFIX_V1 + "/auth",
)


async def verify_identity_for_email(verifier: IdentityVerifier, id_token: str, email: str) -> IdentityClaims:
    """Returns the claims of id_token when it is valid and was issued to email.

    Raises IdentityTokenInvalidError when the token is invalid, carries no email, or carries a different email.
    """
    claims = await verifier.verify(id_token)
    if not claims.email:
        raise IdentityTokenInvalidError("ID token has no email claim")
    if claims.email.lower() != email.lower():
        raise IdentityTokenInvalidError("ID token was not issued to the submitted email")
    return claims


@router.post("/sign-up")
async def sign_up(
    body: SignUpRequest,
    response: Response,
    verifier: Annotated[IdentityVerifier, Depends(identity_verifier_dependency)],
    directory: Annotated[UserDirectory, Depends(user_directory_dependency)],
) -> AuthActionResponse:
    """Creates the directory record for the identity in the ID token.

    The record id is the token's subject and the stored email is the token's email. A repeated sign-up leaves the
    existing record unchanged.
    """
    try:
        claims = await verify_identity_for_email(verifier, body.id_token, body.email)
    except IdentityTokenInvalidError as err:
        logger.info(f"Rejected sign-up: {err}")
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return AuthActionResponse(success=False, message=MESSAGE_CREATE_FAILED)

    try:
        outcome = await directory.create_if_absent(claims.sub, body.name, claims.email)
    except StoreError:
        logger.exception(f"Failed to create user {claims.sub}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return AuthActionResponse(success=False, message=MESSAGE_CREATE_FAILED)

    if outcome == CreateUserOutcome.ALREADY_EXISTS:
        response.status_code = status.HTTP_409_CONFLICT
        return AuthActionResponse(success=False, message=MESSAGE_USER_EXISTS)
    return AuthActionResponse(success=True, message=MESSAGE_ACCOUNT_CREATED)


@router.post("/sign-in")
async def sign_in(
    body: SignInRequest,
    response: Response,
    verifier: Annotated[IdentityVerifier, Depends(identity_verifier_dependency)],
    directory: Annotated[UserDirectory, Depends(user_directory_dependency)],
    cookie: Annotated[SessionCookie, Depends(session_cookie_dependency)],
) -> AuthActionResponse:
    """Exchanges an ID token for a session cookie."""
    try:
        claims = await verify_identity_for_email(verifier, body.id_token, body.email)
    except IdentityTokenInvalidError as err:
        logger.info(f"Rejected sign-in: {err}")
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return AuthActionResponse(success=False, message=MESSAGE_SIGN_IN_FAILED)

    try:
        user = await directory.get(claims.sub)
    except (StoreError, RecordDecodeError):
        logger.exception(f"Failed to look up user {claims.sub}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return AuthActionResponse(success=False, message=MESSAGE_SIGN_IN_FAILED)
    if user is None:
        response.status_code = status.HTTP_404_NOT_FOUND
        return AuthActionResponse(success=False, message=MESSAGE_NO_SUCH_USER)

    credential = verifier.issue_session(claims)
    cookie.store(credential.value)
    logger.info(f"Issued session for principal {credential.principal_id}")
    return AuthActionResponse(success=True, message=MESSAGE_SIGNED_IN)


@router.get("/me")
async def caller_identity(
    principal: Annotated[Principal | None, Depends(current_principal_dependency)],
) -> CallerIdentityResponse:
    """Returns the signed-in user, or null for anonymous callers."""
    return CallerIdentityResponse(user=principal, is_authenticated=principal is not None)

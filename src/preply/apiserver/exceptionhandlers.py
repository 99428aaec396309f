from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from preply.apiserver.routers.auth.identity_verifier import IdentityTokenInvalidError
from preply.apiserver.store.document_store import RecordDecodeError, StoreError


def setup(app):
    """Registers exception handlers to the FastAPI app.

    The general goal of these exception handlers should be to return stable API responses (including meaningful HTTP
    status codes) to exceptions we recognize, and ideally not reveal too much about internal implementation details.
    """

    @app.exception_handler(IdentityTokenInvalidError)
    async def exception_handler_identitytokeninvalid(_request: Request, exc: IdentityTokenInvalidError):
        logger.info(f"Rejected ID token: {exc}")
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Failed to log into an account. Please try again."},
        )

    @app.exception_handler(StoreError)
    async def exception_handler_storeerror(_request: Request, exc: StoreError):
        logger.opt(exception=exc).error("Document store request failed")
        return JSONResponse(status_code=503, content={"message": "The document store is unavailable."})

    @app.exception_handler(RecordDecodeError)
    async def exception_handler_recorddecodeerror(_request: Request, exc: RecordDecodeError):
        logger.opt(exception=exc).error(f"Failed to decode {exc.collection}/{exc.doc_id}")
        return JSONResponse(status_code=500, content={"message": "A stored record could not be read."})

    @app.exception_handler(ValidationError)
    async def exception_handler_pydantic_validationerror(_request: Request, exc: ValidationError):
        # This resembles FastAPI's request_validation_exception_handler but handles Pydantic ValidationErrors raised
        # by the implementation of the handlers.
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors())},
        )

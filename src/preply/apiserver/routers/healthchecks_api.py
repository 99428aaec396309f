from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI
from loguru import logger

from preply.apiserver.dependencies import document_store_dependency
from preply.apiserver.store.document_store import DocumentStore


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(f"Starting router: {__name__} (prefix={router.prefix})")
    yield


router = APIRouter(lifespan=lifespan, prefix="/_healthchecks", dependencies=[])


@router.get("/store")
async def healthcheck_store(
    store: Annotated[DocumentStore, Depends(document_store_dependency)],
):
    """Endpoint to confirm that we can reach the document store and issue a query."""
    await store.ping()
    return {"status": "ok", "store": type(store).__name__}

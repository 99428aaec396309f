from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from preply.apiserver import (
    customlogging,
    database,
    exceptionhandlers,
    middleware,
    routes,
)
from preply.apiserver.routers.auth import auth_dependencies
from preply.ops import sentry

sentry.setup()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(f"Starting server: {__name__}")

    # Fail fast on an unusable session keyset or identity provider configuration.
    auth_dependencies.init()

    async with database.setup():
        yield


app = FastAPI(lifespan=lifespan)
exceptionhandlers.setup(app)
middleware.setup(app)
customlogging.setup()
routes.register(app)
auth_dependencies.setup(app)

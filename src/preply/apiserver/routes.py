from fastapi import FastAPI

from preply.apiserver.flags import PUBLISH_ALL_DOCS
from preply.apiserver.routers import healthchecks_api, interviews_api
from preply.apiserver.routers.auth import auth_api


def register(app: FastAPI):
    app.include_router(healthchecks_api.router, tags=["Health Checks"], include_in_schema=False)

    app.include_router(auth_api.router, tags=["Auth"])

    app.include_router(
        interviews_api.router,
        tags=["Interviews"],
        include_in_schema=PUBLISH_ALL_DOCS,
    )

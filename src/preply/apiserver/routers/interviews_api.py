from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query
from loguru import logger

from preply.apiserver import constants, flags
from preply.apiserver.dependencies import interview_query_service_dependency
from preply.apiserver.interviews.interview_queries import InterviewQueryService
from preply.apiserver.interviews.interview_types import InterviewFeedResponse
from preply.apiserver.routers.auth.auth_dependencies import require_principal
from preply.apiserver.routers.auth.principal import Principal


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(f"Starting router: {__name__} (prefix={router.prefix})")
    yield


router = APIRouter(
    lifespan=lifespan,
    prefix=constants.API_PREFIX_V1 + "/interviews",
)


@router.get("/feed")
async def interview_feed(
    principal: Annotated[Principal, Depends(require_principal)],
    queries: Annotated[InterviewQueryService, Depends(interview_query_service_dependency)],
    limit: Annotated[int, Query(ge=1, le=100)] = flags.DISCOVERABLE_LIMIT,
) -> InterviewFeedResponse:
    """Returns the caller's own interviews and the most recent finalized interviews of other users.

    owned or discoverable is null when that list could not be loaded. Clients render null like an empty list.
    """
    feed = await queries.feed(principal.id, limit)
    return InterviewFeedResponse(user=principal, owned=feed.owned, discoverable=feed.discoverable)

from typing import Annotated

from fastapi import Depends

from preply.apiserver import database
from preply.apiserver.interviews.interview_queries import InterviewQueryService
from preply.apiserver.store.document_store import DocumentStore
from preply.apiserver.users.user_directory import UserDirectory


def document_store_dependency() -> DocumentStore:
    """Returns the process-wide document store. Tests may override this to substitute another store."""
    return database.get_store()


def user_directory_dependency(
    store: Annotated[DocumentStore, Depends(document_store_dependency)],
) -> UserDirectory:
    return UserDirectory(store)


def interview_query_service_dependency(
    store: Annotated[DocumentStore, Depends(document_store_dependency)],
) -> InterviewQueryService:
    return InterviewQueryService(store)

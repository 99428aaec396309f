from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from preply.apiserver.constants import INTERVIEWS_COLLECTION
from preply.apiserver.routers.auth.principal import Principal
from preply.apiserver.store.document_store import Document, RecordDecodeError

# createdAt is stored as a UTC timestamp with millisecond precision, e.g. 2024-05-01T12:30:00.000Z. The stores sort
# createdAt as text, which matches time order only for this fixed-width form.
CREATED_AT_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"


class InterviewRecord(BaseModel):
    """An interview as stored in the interviews collection.

    Only the owner, the finalized flag and the creation time are interpreted here. Every other stored field (role,
    level, type, techstack, questions, ...) is carried through unchanged.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    id: str
    user_id: Annotated[str, Field(alias="userId")]
    finalized: bool
    created_at: Annotated[str, Field(alias="createdAt", pattern=CREATED_AT_PATTERN)]

    @classmethod
    def from_document(cls, doc: Document) -> "InterviewRecord":
        try:
            return cls.model_validate({**doc.data, "id": doc.id})
        except ValidationError as err:
            raise RecordDecodeError(INTERVIEWS_COLLECTION, doc.id, err) from err


class InterviewFeed(BaseModel):
    """The two interview lists shown to a signed-in user.

    A list is None when it could not be loaded, and empty when nothing matched.
    """

    owned: list[InterviewRecord] | None
    discoverable: list[InterviewRecord] | None


class InterviewFeedResponse(InterviewFeed):
    user: Principal

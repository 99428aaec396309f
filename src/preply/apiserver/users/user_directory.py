import enum

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from preply.apiserver.constants import USERS_COLLECTION
from preply.apiserver.store.document_store import Document, DocumentStore, RecordDecodeError


class UserRecord(BaseModel):
    """A stored user profile. The principal id is the document id; the body holds name and email."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str

    def to_document_data(self):
        return {"name": self.name, "email": self.email}

    @classmethod
    def from_document(cls, doc: Document) -> "UserRecord":
        try:
            return cls.model_validate({**doc.data, "id": doc.id})
        except ValidationError as err:
            raise RecordDecodeError(USERS_COLLECTION, doc.id, err) from err


class CreateUserOutcome(enum.StrEnum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


class UserDirectory:
    """Maps principal ids to user profiles.

    The existence check and the write in create_if_absent are two store operations. Two concurrent sign-ups with the
    same id may both observe "absent"; the second write then replaces the first with identical identity.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, user_id: str) -> UserRecord | None:
        doc = await self.store.get(USERS_COLLECTION, user_id)
        if doc is None:
            return None
        return UserRecord.from_document(doc)

    async def create_if_absent(self, user_id: str, name: str, email: str) -> CreateUserOutcome:
        if await self.store.get(USERS_COLLECTION, user_id) is not None:
            logger.info(f"User {user_id} already exists; not creating")
            return CreateUserOutcome.ALREADY_EXISTS
        record = UserRecord(id=user_id, name=name, email=email)
        await self.store.set(USERS_COLLECTION, user_id, record.to_document_data())
        logger.info(f"Created user {user_id}")
        return CreateUserOutcome.CREATED

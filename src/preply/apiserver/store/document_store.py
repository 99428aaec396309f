"""Describes the document store that holds users and interviews.

The store is addressed by collection name and document id. Queries combine field filters, an optional sort field and
an optional limit. Documents that lack a filtered or sorted field never match the query.
"""

import enum
from dataclasses import dataclass, replace
from typing import Any, Protocol, TypeAlias

from pydantic import ValidationError

FieldValue: TypeAlias = str | bool | int | float


class StoreError(Exception):
    """Raised when the document store cannot complete an operation."""


class RecordDecodeError(Exception):
    """Raised when a stored document does not have the shape its collection requires."""

    def __init__(self, collection: str, doc_id: str, cause: ValidationError):
        super().__init__(f"Document {collection}/{doc_id} failed to decode: {cause.error_count()} error(s)")
        self.collection = collection
        self.doc_id = doc_id
        self.cause = cause


class FilterOp(enum.StrEnum):
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="


@dataclass(frozen=True, slots=True)
class FieldFilter:
    field: str
    op: FilterOp
    value: FieldValue


@dataclass(frozen=True, slots=True)
class Document:
    id: str
    data: dict[str, Any]


@dataclass(frozen=True, slots=True)
class DocumentQuery:
    """An immutable query over one collection.

    Build queries by chaining; each call returns a new query:

        DocumentQuery("interviews").where("finalized", "==", True).order_by("createdAt", descending=True).limit(20)
    """

    collection: str
    filters: tuple[FieldFilter, ...] = ()
    order_field: str | None = None
    descending: bool = False
    max_results: int | None = None

    def where(self, field: str, op: FilterOp | str, value: FieldValue) -> "DocumentQuery":
        if not isinstance(value, str | bool | int | float):
            raise TypeError(f"Unsupported filter value for {field}: {type(value).__name__}")
        return replace(self, filters=(*self.filters, FieldFilter(field, FilterOp(op), value)))

    def order_by(self, field: str, *, descending: bool = False) -> "DocumentQuery":
        return replace(self, order_field=field, descending=descending)

    def limit(self, max_results: int) -> "DocumentQuery":
        if max_results < 1:
            raise ValueError(f"limit must be at least 1, got {max_results}")
        return replace(self, max_results=max_results)


class DocumentStore(Protocol):
    """Operations the API server needs from a document store.

    Implementations raise StoreError when an operation cannot be completed.
    """

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Returns the document, or None when it does not exist."""

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Creates or replaces the document."""

    async def query(self, query: DocumentQuery) -> list[Document]:
        """Returns the documents matching query in the requested order."""

    async def ping(self) -> None:
        """Raises StoreError if the store is unreachable."""

    async def prepare(self) -> None:
        """Creates any storage structures the store needs. Safe to call repeatedly."""

    async def close(self) -> None:
        """Releases connections held by the store."""

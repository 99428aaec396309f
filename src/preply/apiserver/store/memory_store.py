import copy
import operator
from typing import Any

from preply.apiserver.store.document_store import (
    Document,
    DocumentQuery,
    FieldFilter,
    FieldValue,
    FilterOp,
)

_OPERATORS = {
    FilterOp.EQ: operator.eq,
    FilterOp.NE: operator.ne,
    FilterOp.LT: operator.lt,
    FilterOp.LE: operator.le,
    FilterOp.GT: operator.gt,
    FilterOp.GE: operator.ge,
}


def _type_rank(value: Any) -> int:
    """Values of different kinds never compare equal and order booleans, then numbers, then strings."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int | float):
        return 1
    if isinstance(value, str):
        return 2
    return 3


def _matches(data: dict[str, Any], flt: FieldFilter) -> bool:
    if flt.field not in data:
        return False
    value = data[flt.field]
    if _type_rank(value) != _type_rank(flt.value):
        return flt.op == FilterOp.NE
    return _OPERATORS[flt.op](value, flt.value)


def _sort_key(field: str):
    def key(doc: Document) -> tuple[int, FieldValue, str]:
        value = doc.data[field]
        rank = _type_rank(value)
        # Nulls, maps and arrays sort after scalars, by document id.
        return rank, value if rank < 3 else "", doc.id

    return key


class MemoryDocumentStore:
    """Keeps documents in process memory.

    Used in airplane mode and in tests. Documents are copied on the way in and out so callers cannot mutate stored
    state.
    """

    def __init__(self):
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def get(self, collection: str, doc_id: str) -> Document | None:
        data = self.collections.get(collection, {}).get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, data=copy.deepcopy(data))

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    async def query(self, query: DocumentQuery) -> list[Document]:
        docs = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self.collections.get(query.collection, {}).items()
            if all(_matches(data, flt) for flt in query.filters)
        ]
        if query.order_field:
            docs = [doc for doc in docs if query.order_field in doc.data]
            docs.sort(key=_sort_key(query.order_field), reverse=query.descending)
        if query.max_results is not None:
            docs = docs[: query.max_results]
        return docs

    async def ping(self) -> None:
        return

    async def prepare(self) -> None:
        return

    async def close(self) -> None:
        return

"""Implements DocumentStore on a SQL database using SQLAlchemy's asyncio extension."""

import contextlib
from typing import Any

import sqlalchemy
from loguru import logger
from sqlalchemy import ColumnElement, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from preply.apiserver.store.document_store import (
    Document,
    DocumentQuery,
    FieldFilter,
    FieldValue,
    FilterOp,
    StoreError,
)
from preply.apiserver.store.tables import Base, DocumentRow

# SQLAlchemy's logger will append this to the name of its loggers used for the application database; e.g.
# sqlalchemy.engine.Engine.preply_app.
SA_LOGGER_NAME_FOR_APP = "preply_app"


def _typed_field(field: str, value: FieldValue) -> ColumnElement:
    """Returns the JSON field of the document body cast to the type of the value it is compared with."""
    element = DocumentRow.data[field]
    if isinstance(value, bool):
        return element.as_boolean()
    if isinstance(value, int):
        return element.as_integer()
    if isinstance(value, float):
        return element.as_float()
    return element.as_string()


def _filter_clause(flt: FieldFilter) -> ColumnElement[bool]:
    field = _typed_field(flt.field, flt.value)
    match flt.op:
        case FilterOp.EQ:
            return field == flt.value
        case FilterOp.NE:
            # SQL comparisons with NULL are never true, so documents without the field are excluded.
            return field != flt.value
        case FilterOp.LT:
            return field < flt.value
        case FilterOp.LE:
            return field <= flt.value
        case FilterOp.GT:
            return field > flt.value
        case FilterOp.GE:
            return field >= flt.value


@contextlib.contextmanager
def _wrap_errors(operation: str):
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        raise StoreError(f"{operation} failed: {exc}") from exc


class SqlDocumentStore:
    """Stores documents in the `documents` table, one session per operation.

    Sort fields are compared as text; the collections in this application sort on ISO-8601 timestamps, whose text
    order matches their time order.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        # We use expire_on_commit=False so that rows remain readable after the session closes.
        self.sessionmaker = async_sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, *, echo: bool = False) -> "SqlDocumentStore":
        engine = create_async_engine(
            database_url,
            echo=echo,
            execution_options={"logging_token": "app_async"},
            logging_name=SA_LOGGER_NAME_FOR_APP,
        )
        return cls(engine)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        with _wrap_errors(f"get {collection}/{doc_id}"):
            async with self.sessionmaker() as session:
                row = await session.get(DocumentRow, (collection, doc_id))
        if row is None:
            return None
        return Document(id=row.id, data=row.data)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with _wrap_errors(f"set {collection}/{doc_id}"):
            async with self.sessionmaker() as session:
                await session.merge(DocumentRow(collection=collection, id=doc_id, data=data))
                await session.commit()

    async def query(self, query: DocumentQuery) -> list[Document]:
        stmt = select(DocumentRow).where(
            DocumentRow.collection == query.collection,
            *[_filter_clause(flt) for flt in query.filters],
        )
        if query.order_field:
            order_key = DocumentRow.data[query.order_field].as_string()
            stmt = stmt.where(order_key.is_not(None))
            if query.descending:
                stmt = stmt.order_by(order_key.desc(), DocumentRow.id.desc())
            else:
                stmt = stmt.order_by(order_key, DocumentRow.id)
        if query.max_results is not None:
            stmt = stmt.limit(query.max_results)
        with _wrap_errors(f"query {query.collection}"):
            async with self.sessionmaker() as session:
                rows = (await session.scalars(stmt)).all()
        return [Document(id=row.id, data=row.data) for row in rows]

    async def ping(self) -> None:
        with _wrap_errors("ping"):
            async with self.sessionmaker() as session:
                await session.execute(sqlalchemy.text("SELECT 1"))

    async def prepare(self) -> None:
        logger.info("Ensuring document store tables exist")
        with _wrap_errors("prepare"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

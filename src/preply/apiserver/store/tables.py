"""Defines the app db table backing the SQL document store using the SQLAlchemy ORM."""

from typing import Any, ClassVar

import sqlalchemy
from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeEngine


class Base(AsyncAttrs, DeclarativeBase):
    # See https://docs.sqlalchemy.org/en/20/orm/declarative_tables.html#customizing-the-type-map
    type_annotation_map: ClassVar[dict[type, TypeEngine]] = {
        dict[str, Any]: sqlalchemy.JSON().with_variant(JSONB(), "postgresql"),
    }


class DocumentRow(Base):
    """Stores one document of one collection. The document body is kept as JSON."""

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(255), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict[str, Any]]

"""Owns the process-wide document store handle."""

import contextlib
import threading

from loguru import logger
from sqlalchemy import make_url

from preply.apiserver import flags
from preply.apiserver.store.document_store import DocumentStore
from preply.apiserver.store.memory_store import MemoryDocumentStore
from preply.apiserver.store.sql_store import SqlDocumentStore

DEFAULT_POSTGRES_DIALECT = "postgresql+psycopg"


class DatabaseSetupRequiredError(Exception):
    pass


def generic_url_to_sa_url(database_url):
    """Converts postgres:// to a SQLAlchemy-compatible value that includes a dialect."""
    if database_url.startswith(("postgres://", "postgresql://")):
        database_url = DEFAULT_POSTGRES_DIALECT + "://" + database_url[database_url.find("://") + 3 :]
    return database_url


def get_server_database_url():
    """Gets a SQLAlchemy-compatible URL string from the environment."""
    if database_url := flags.DATABASE_URL:
        with_dialect = generic_url_to_sa_url(database_url)
        safe_url = make_url(with_dialect).set(password="redacted")
        logger.info(f"Using application database DSN: {safe_url}")
        return with_dialect
    raise ValueError("DATABASE_URL is not set")


def create_store() -> DocumentStore:
    """Constructs the document store described by the environment."""
    if flags.AIRPLANE_MODE:
        logger.warning("AIRPLANE_MODE is set: documents are kept in memory and lost on exit.")
        return MemoryDocumentStore()
    return SqlDocumentStore.from_url(get_server_database_url(), echo=flags.LOG_SQL_APP_DB)


# _GLOBAL_STORE is managed by init() and close() under _init_lock.
_GLOBAL_STORE: DocumentStore | None = None
_init_lock = threading.Lock()


def init(store: DocumentStore | None = None) -> DocumentStore:
    """Creates the process-wide document store on the first call and returns it on every call.

    When store is given and no store exists yet, it becomes the process-wide store.
    """
    global _GLOBAL_STORE
    with _init_lock:
        if _GLOBAL_STORE is None:
            _GLOBAL_STORE = store if store is not None else create_store()
        return _GLOBAL_STORE


def get_store() -> DocumentStore:
    if _GLOBAL_STORE is None:
        raise DatabaseSetupRequiredError()
    return _GLOBAL_STORE


async def close():
    global _GLOBAL_STORE
    with _init_lock:
        store, _GLOBAL_STORE = _GLOBAL_STORE, None
    if store is not None:
        await store.close()


@contextlib.asynccontextmanager
async def setup(store: DocumentStore | None = None):
    """Initializes the process-wide store for the duration of the context."""
    instance = init(store)
    await instance.prepare()
    try:
        yield instance
    finally:
        await close()

import asyncio

from loguru import logger

from preply.apiserver.constants import DEFAULT_DISCOVERABLE_LIMIT, INTERVIEWS_COLLECTION
from preply.apiserver.interviews.interview_types import InterviewFeed, InterviewRecord
from preply.apiserver.store.document_store import DocumentQuery, DocumentStore, FilterOp


class InterviewQueryService:
    """Read-only queries over the interviews collection for one principal.

    Both queries return None when the store fails or a document cannot be decoded, and an empty list when no
    interview matches. Failures are logged and never raised.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def owned(self, principal_id: str) -> list[InterviewRecord] | None:
        """Returns every interview owned by principal_id, newest first."""
        query = (
            DocumentQuery(INTERVIEWS_COLLECTION)
            .where("userId", FilterOp.EQ, principal_id)
            .order_by("createdAt", descending=True)
        )
        return await self._run("owned", principal_id, query)

    async def discoverable(
        self, principal_id: str, limit: int = DEFAULT_DISCOVERABLE_LIMIT
    ) -> list[InterviewRecord] | None:
        """Returns up to limit finalized interviews owned by anyone but principal_id, newest first."""
        query = (
            DocumentQuery(INTERVIEWS_COLLECTION)
            .where("finalized", FilterOp.EQ, True)
            .where("userId", FilterOp.NE, principal_id)
            .order_by("createdAt", descending=True)
            .limit(limit)
        )
        return await self._run("discoverable", principal_id, query)

    async def feed(self, principal_id: str, limit: int = DEFAULT_DISCOVERABLE_LIMIT) -> InterviewFeed:
        """Runs owned() and discoverable() concurrently and returns both results."""
        async with asyncio.TaskGroup() as tg:
            owned = tg.create_task(self.owned(principal_id))
            discoverable = tg.create_task(self.discoverable(principal_id, limit))
        return InterviewFeed(owned=owned.result(), discoverable=discoverable.result())

    async def _run(self, operation: str, principal_id: str, query: DocumentQuery) -> list[InterviewRecord] | None:
        logger.debug(f"[{operation}] Fetching interviews for principal {principal_id}")
        try:
            docs = await self.store.query(query)
            records = [InterviewRecord.from_document(doc) for doc in docs]
        except Exception:  # noqa: BLE001
            logger.exception(f"[{operation}] Failed to fetch interviews for principal {principal_id}")
            return None
        logger.debug(f"[{operation}] Returning {len(records)} interviews for principal {principal_id}")
        return records

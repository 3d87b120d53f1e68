"""
MongoDB change-stream implementation of ChangeFeed.

One change stream per watched collection, filtered server-side to the
subscribed patient. Change streams need a replica set; on a standalone
server the stream fails, the failure is logged and the engine carries on
without live updates.
"""

import asyncio
from typing import Any, Dict, List, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from dentalsync.application.ports.services.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeHandler,
    ChangeSubscription,
)
from dentalsync.core.exceptions import RealtimeSubscriptionError
from dentalsync.core.structured_logger import get_logger
from dentalsync.observability import record_error

logger = get_logger(__name__)


def patient_change_pipeline(patient_id: str) -> List[Dict[str, Any]]:
    """Changes whose document belongs to the patient.

    Deletes carry no full document, so they are always passed through.
    """
    return [
        {
            "$match": {
                "$or": [
                    {"fullDocument.patient_id": patient_id},
                    {"operationType": "delete"},
                ]
            }
        }
    ]


class MongoChangeSubscription(ChangeSubscription):
    """Owns the per-collection stream tasks of one subscription."""

    def __init__(self, tasks: List["asyncio.Task[None]"]) -> None:
        self._tasks = tasks

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class MongoChangeFeed(ChangeFeed):
    """ChangeFeed backed by MongoDB change streams."""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._database = database

    async def subscribe(
        self,
        patient_id: str,
        tables: Sequence[str],
        handler: ChangeHandler,
    ) -> ChangeSubscription:
        if not tables:
            raise RealtimeSubscriptionError(patient_id, "no collections to watch")
        tasks = [
            asyncio.ensure_future(self._pump(patient_id, table, handler))
            for table in tables
        ]
        logger.info("Change streams opened", patient_id=patient_id, collections=list(tables))
        return MongoChangeSubscription(tasks)

    async def _pump(self, patient_id: str, table: str, handler: ChangeHandler) -> None:
        collection = self._database[table]
        try:
            async with collection.watch(
                patient_change_pipeline(patient_id), full_document="updateLookup"
            ) as stream:
                async for change in stream:
                    event = ChangeEvent(
                        table=table,
                        operation=change.get("operationType", "unknown"),
                        patient_id=patient_id,
                    )
                    try:
                        await handler(event)
                    except Exception as exc:
                        logger.exception("Change handler failed", collection=table, error=str(exc))
                        record_error(type(exc).__name__, "change_feed_handler")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(
                "Change stream stopped; live updates disabled",
                patient_id=patient_id,
                collection=table,
                error=str(exc),
            )
            record_error(type(exc).__name__, "change_feed")

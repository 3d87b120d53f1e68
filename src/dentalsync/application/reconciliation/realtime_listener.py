"""
Realtime invalidation listener.

Subscribes to change notifications for one patient across the tooth
record tables. Every notification, whatever its kind, bumps a monotonic
version and starts an immediate reload tagged with that version. Event
contents are never applied to the chart directly.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Sequence, Set, Tuple

from ...observability import record_realtime_event
from ..ports.services.change_feed import ChangeEvent, ChangeFeed, ChangeSubscription
from .reload_scheduler import ReloadScheduler, ReloadTrigger

logger = logging.getLogger(__name__)

DEFAULT_TABLES: Tuple[str, ...] = ("tooth_records", "treatments")


class ListenerState(str, Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    RELOAD_IN_FLIGHT = "reload-in-flight"


class RealtimeInvalidationListener:
    """Turns change notifications into version-tagged chart reloads."""

    def __init__(
        self,
        feed: ChangeFeed,
        scheduler: ReloadScheduler,
        tables: Sequence[str] = DEFAULT_TABLES,
    ) -> None:
        self._feed = feed
        self._scheduler = scheduler
        self._tables = tuple(tables)
        self._subscription: Optional[ChangeSubscription] = None
        self._version = 0
        self._reloads: Set["asyncio.Task[bool]"] = set()

    @property
    def version(self) -> int:
        """Number of notifications received so far."""
        return self._version

    @property
    def state(self) -> ListenerState:
        if self._subscription is None:
            return ListenerState.STOPPED
        if self._reloads:
            return ListenerState.RELOAD_IN_FLIGHT
        return ListenerState.IDLE

    @property
    def is_busy(self) -> bool:
        return bool(self._reloads)

    async def start(self) -> None:
        """Open the subscription.

        Raises:
            RealtimeSubscriptionError: the feed refused the subscription
        """
        if self._subscription is not None:
            return
        self._subscription = await self._feed.subscribe(
            self._scheduler.patient_id, self._tables, self._on_event
        )
        logger.info(
            f"Listening for changes to {', '.join(self._tables)} "
            f"for patient {self._scheduler.patient_id}"
        )

    async def stop(self) -> None:
        """Close the subscription. Reloads already started run to completion."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()
            logger.info(f"Stopped listening for patient {self._scheduler.patient_id}")

    async def _on_event(self, event: ChangeEvent) -> None:
        if self._subscription is None:
            return
        if event.patient_id != self._scheduler.patient_id or event.table not in self._tables:
            logger.debug(f"Ignoring out-of-scope change on {event.table} for {event.patient_id}")
            return

        self._version += 1
        version = self._version
        record_realtime_event(event.table, event.operation)
        logger.debug(f"Change {event.operation} on {event.table}; starting reload v{version}")

        task = asyncio.ensure_future(self._scheduler.reload_now(ReloadTrigger.REALTIME, tag=version))
        self._reloads.add(task)
        task.add_done_callback(self._reloads.discard)

    async def wait_idle(self) -> None:
        """Wait until every reload started by a notification has finished."""
        while self._reloads:
            await asyncio.gather(*list(self._reloads), return_exceptions=True)

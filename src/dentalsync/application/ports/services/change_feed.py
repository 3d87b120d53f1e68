"""
Realtime change feed interface.

Events carry no payload the engine trusts: each one only means
"something in this table changed for this patient, reload".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Sequence

from ....core.utils.datetime_utils import get_current_timestamp


@dataclass(frozen=True)
class ChangeEvent:
    """A change notification (insert, update, delete, ...)."""

    table: str
    operation: str
    patient_id: str
    received_at: datetime = field(default_factory=get_current_timestamp)


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class ChangeSubscription(ABC):
    """Handle for an open subscription."""

    @abstractmethod
    async def close(self) -> None:
        """Stop delivering events; safe to call twice."""
        pass


class ChangeFeed(ABC):
    """Abstract source of change notifications."""

    @abstractmethod
    async def subscribe(
        self,
        patient_id: str,
        tables: Sequence[str],
        handler: ChangeHandler,
    ) -> ChangeSubscription:
        """Deliver every change to ``tables`` scoped to ``patient_id`` to ``handler``.

        Raises:
            RealtimeSubscriptionError: the subscription could not be opened
        """
        pass

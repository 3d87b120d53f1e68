"""
Tooth record repository interface.

The backing store may hold one row per (patient, tooth, consultation);
callers that need the chart read the latest row per tooth.
"""

from abc import ABC, abstractmethod
from typing import List

from ....domain.entities.tooth_record import ToothRecord


class ToothRecordRepository(ABC):
    """Abstract repository for tooth record rows."""

    @abstractmethod
    async def save(self, record: ToothRecord) -> ToothRecord:
        """Upsert a row and return it as stored.

        Matching is by record ID when present, otherwise by
        (patient, tooth, consultation). The returned record carries the
        assigned ID and the store's update timestamp.
        """
        pass

    @abstractmethod
    async def find_latest_per_tooth(self, patient_id: str) -> List[ToothRecord]:
        """Group the patient's rows by tooth and keep the most recently updated one."""
        pass

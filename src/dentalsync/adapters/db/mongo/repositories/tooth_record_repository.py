"""
MongoDB implementation of ToothRecordRepository.
"""

import logging
from datetime import date
from typing import List, Optional

from dentalsync.application.ports.repositories.tooth_record_repo import ToothRecordRepository
from dentalsync.core.utils.datetime_utils import ensure_aware, get_current_timestamp
from dentalsync.domain.entities.tooth_record import ToothRecord
from dentalsync.domain.enums.clinical import RecordOrigin

from ..models.tooth_record_m import ToothRecordMongo

logger = logging.getLogger(__name__)


def latest_per_tooth_pipeline(patient_id: str) -> List[dict]:
    """Group a patient's rows by tooth, keeping the most recently updated one."""
    return [
        {"$match": {"patient_id": patient_id}},
        {"$sort": {"updated_at": -1, "_id": 1}},
        {"$group": {"_id": "$tooth_number", "row": {"$first": "$$ROOT"}}},
        {"$replaceRoot": {"newRoot": "$row"}},
        {"$project": {"_id": 0, "revision_id": 0}},
        {"$sort": {"tooth_number": 1}},
    ]


class MongoToothRecordRepository(ToothRecordRepository):
    """MongoDB implementation of ToothRecordRepository."""

    async def save(self, record: ToothRecord) -> ToothRecord:
        """Upsert by record ID, falling back to (patient, tooth, consultation)."""
        existing: Optional[ToothRecordMongo] = None
        if record.record_id:
            existing = await ToothRecordMongo.find_one(ToothRecordMongo.record_id == record.record_id)
        if existing is None:
            existing = await ToothRecordMongo.find_one(
                ToothRecordMongo.patient_id == record.patient_id,
                ToothRecordMongo.tooth_number == str(record.tooth_number),
                ToothRecordMongo.consultation_id == record.consultation_id,
            )

        tooth_mongo = self._domain_to_mongo(record, existing)
        await tooth_mongo.save()
        logger.info(
            f"Tooth {record.tooth_number} for patient {record.patient_id} "
            f"{'updated' if existing else 'inserted'} as {tooth_mongo.record_id}"
        )
        return self._mongo_to_domain(tooth_mongo)

    async def find_latest_per_tooth(self, patient_id: str) -> List[ToothRecord]:
        """Latest row per tooth, computed server-side."""
        rows = await ToothRecordMongo.aggregate(latest_per_tooth_pipeline(patient_id)).to_list()
        return [self._mongo_to_domain(ToothRecordMongo.model_validate(row)) for row in rows]

    def _domain_to_mongo(self, record: ToothRecord, existing: Optional[ToothRecordMongo]) -> ToothRecordMongo:
        """Convert domain entity to MongoDB model, reusing the matched row."""
        tooth_mongo = existing or ToothRecordMongo(
            patient_id=record.patient_id,
            tooth_number=str(record.tooth_number),
            consultation_id=record.consultation_id,
        )
        tooth_mongo.status = record.status.value
        tooth_mongo.diagnoses = list(record.diagnoses)
        tooth_mongo.treatments = list(record.treatments)
        tooth_mongo.priority = record.priority.value
        tooth_mongo.notes = record.notes
        tooth_mongo.examination_date = (
            record.examination_date.isoformat() if record.examination_date else None
        )
        tooth_mongo.updated_at = get_current_timestamp()
        return tooth_mongo

    def _mongo_to_domain(self, tooth_mongo: ToothRecordMongo) -> ToothRecord:
        """Convert MongoDB model to domain entity."""
        return ToothRecord(
            tooth_number=tooth_mongo.tooth_number,
            patient_id=tooth_mongo.patient_id,
            status=tooth_mongo.status,
            diagnoses=tuple(tooth_mongo.diagnoses),
            treatments=tuple(tooth_mongo.treatments),
            priority=tooth_mongo.priority,
            notes=tooth_mongo.notes,
            examination_date=(
                date.fromisoformat(tooth_mongo.examination_date) if tooth_mongo.examination_date else None
            ),
            updated_at=ensure_aware(tooth_mongo.updated_at),
            record_id=tooth_mongo.record_id,
            consultation_id=tooth_mongo.consultation_id,
            origin=RecordOrigin.PERSISTED,
        )

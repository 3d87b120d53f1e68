"""
MongoDB Beanie model for tooth record rows.

The collection may hold several rows per tooth (one per consultation);
readers group by tooth and keep the most recently updated row.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from beanie import Document
from pydantic import Field

from .....core.utils.datetime_utils import get_current_timestamp


class ToothRecordMongo(Document):
    """MongoDB model for one charted tooth."""

    record_id: str = Field(default_factory=lambda: f"TR-{uuid.uuid4().hex}", description="Row ID")
    patient_id: str = Field(..., description="Patient ID reference")
    tooth_number: str = Field(..., description="FDI two-digit tooth number")
    consultation_id: Optional[str] = Field(None, description="Consultation the row was written in")
    status: str = Field(default="healthy")
    diagnoses: List[str] = Field(default_factory=list)
    treatments: List[str] = Field(default_factory=list)
    priority: str = Field(default="medium")
    notes: str = Field(default="")
    examination_date: Optional[str] = Field(None, description="ISO date of the examination")
    created_at: datetime = Field(default_factory=get_current_timestamp)
    updated_at: datetime = Field(default_factory=get_current_timestamp)

    class Settings:
        name = "tooth_records"
        indexes = [
            "record_id",
            [("patient_id", 1), ("tooth_number", 1), ("consultation_id", 1)],  # upsert key
            [("patient_id", 1), ("updated_at", -1)],  # latest-per-tooth reads
            "consultation_id",
        ]

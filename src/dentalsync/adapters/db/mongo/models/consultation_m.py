"""
MongoDB Beanie model for consultations.

Each section is stored as an independent JSON blob keyed by section ID.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from beanie import Document
from pydantic import Field

from .....core.utils.datetime_utils import get_current_timestamp


class ConsultationMongo(Document):
    """MongoDB model for a consultation document."""

    consultation_id: str = Field(..., description="Consultation ID", unique=True)
    patient_id: str = Field(..., description="Patient ID reference")
    status: str = Field(default="draft", description="draft or completed")
    sections: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Section blobs by section ID")
    created_at: datetime = Field(default_factory=get_current_timestamp)
    updated_at: datetime = Field(default_factory=get_current_timestamp)
    completed_at: Optional[datetime] = None

    class Settings:
        name = "consultations"
        indexes = [
            "consultation_id",
            "patient_id",
            [("patient_id", 1), ("status", 1), ("updated_at", -1)],  # latest draft per patient
        ]

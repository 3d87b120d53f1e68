"""
Value objects package for domain layer.
"""

from .consultation_id import ConsultationId
from .tooth_number import ToothNumber

__all__ = [
    "ConsultationId",
    "ToothNumber",
]

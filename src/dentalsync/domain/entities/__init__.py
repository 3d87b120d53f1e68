"""
Domain entities.
"""

from .consultation import Consultation
from .tooth_record import ChartStats, ToothAggregate, ToothRecord

__all__ = [
    "ChartStats",
    "Consultation",
    "ToothAggregate",
    "ToothRecord",
]

from .consultation_m import ConsultationMongo
from .tooth_record_m import ToothRecordMongo

DOCUMENT_MODELS = [ConsultationMongo, ToothRecordMongo]

__all__ = ["ConsultationMongo", "DOCUMENT_MODELS", "ToothRecordMongo"]

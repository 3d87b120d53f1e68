"""Tooth record and tooth chart aggregate entities.

The aggregate holds at most one record per FDI tooth and is only ever
replaced wholesale; records themselves are immutable.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from ..enums.clinical import RecordOrigin, ToothStatus, TreatmentPriority
from ..errors import InvalidToothNumberError
from ..tooth_status import is_treatment_complete, requires_attention, status_color_code
from ..value_objects.tooth_number import ToothNumber

ToothKey = Union[ToothNumber, int, str]


def _clean_entries(values) -> Tuple[str, ...]:
    """Strip entries, drop blanks, keep first occurrence order."""
    seen: Dict[str, None] = {}
    for value in values or ():
        text = str(value).strip()
        if text and text not in seen:
            seen[text] = None
    return tuple(seen)


@dataclass(frozen=True)
class ToothRecord:
    """Clinical state of one tooth as seen by one source."""

    tooth_number: ToothNumber
    patient_id: str
    status: ToothStatus = ToothStatus.HEALTHY
    diagnoses: Tuple[str, ...] = ()
    treatments: Tuple[str, ...] = ()
    priority: TreatmentPriority = TreatmentPriority.MEDIUM
    notes: str = ""
    examination_date: Optional[date] = None
    updated_at: Optional[datetime] = None
    record_id: Optional[str] = None
    consultation_id: Optional[str] = None
    origin: RecordOrigin = RecordOrigin.PERSISTED

    def __post_init__(self) -> None:
        object.__setattr__(self, "tooth_number", ToothNumber.parse(self.tooth_number))
        object.__setattr__(self, "status", ToothStatus(self.status))
        object.__setattr__(self, "priority", TreatmentPriority(self.priority))
        object.__setattr__(self, "origin", RecordOrigin(self.origin))
        object.__setattr__(self, "diagnoses", _clean_entries(self.diagnoses))
        object.__setattr__(self, "treatments", _clean_entries(self.treatments))
        if not self.patient_id:
            raise ValueError("Tooth record requires a patient ID")

    @property
    def color_code(self) -> str:
        return status_color_code(self.status)

    @property
    def is_persisted(self) -> bool:
        """True once the backing store has assigned an identity."""
        return self.record_id is not None

    @property
    def requires_attention(self) -> bool:
        return requires_attention(self.status)

    @property
    def is_treatment_complete(self) -> bool:
        return is_treatment_complete(self.status)

    def with_origin(self, origin: RecordOrigin) -> "ToothRecord":
        if self.origin == origin:
            return self
        return replace(self, origin=origin)

    def with_changes(self, **changes) -> "ToothRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class ChartStats:
    """Counts shown above the tooth chart."""

    healthy: int = 0
    caries: int = 0
    restorations: int = 0
    attention: int = 0
    total: int = 0


_RESTORED = frozenset(
    {ToothStatus.FILLED, ToothStatus.CROWN, ToothStatus.ROOT_CANAL, ToothStatus.IMPLANT}
)
_ATTENTION = frozenset({ToothStatus.ATTENTION, ToothStatus.EXTRACTION_NEEDED})


@dataclass(frozen=True)
class ToothAggregate:
    """Read-only mapping of tooth number to its governing record."""

    records: Mapping[ToothNumber, ToothRecord] = field(default_factory=dict)
    revision: int = 0
    reconciled_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        frozen: Dict[ToothNumber, ToothRecord] = {}
        for key, record in self.records.items():
            tooth = ToothNumber.parse(key)
            if record.tooth_number != tooth:
                raise ValueError(
                    f"Record for tooth {record.tooth_number} filed under {tooth}"
                )
            frozen[tooth] = record
        object.__setattr__(self, "records", MappingProxyType(dict(sorted(frozen.items()))))

    @classmethod
    def empty(cls) -> "ToothAggregate":
        return cls()

    def __getitem__(self, key: ToothKey) -> ToothRecord:
        return self.records[ToothNumber.parse(key)]

    def __contains__(self, key: object) -> bool:
        try:
            return ToothNumber.parse(key) in self.records  # type: ignore[arg-type]
        except InvalidToothNumberError:
            return False

    def __iter__(self) -> Iterator[ToothNumber]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def get(self, key: ToothKey) -> Optional[ToothRecord]:
        return self.records.get(ToothNumber.parse(key))

    def values(self) -> List[ToothRecord]:
        """Records ordered by tooth number."""
        return list(self.records.values())

    def stats(self) -> ChartStats:
        statuses = [record.status for record in self.records.values()]
        return ChartStats(
            healthy=sum(1 for status in statuses if status == ToothStatus.HEALTHY),
            caries=sum(1 for status in statuses if status == ToothStatus.CARIES),
            restorations=sum(1 for status in statuses if status in _RESTORED),
            attention=sum(1 for status in statuses if status in _ATTENTION),
            total=len(statuses),
        )

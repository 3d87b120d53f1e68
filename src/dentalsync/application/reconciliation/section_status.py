"""
Section status classifier.

``classify`` is a total function of the section payload: it never reads
session state, and unknown or missing payloads classify as empty.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel

from ...domain.enums.clinical import SectionId, SectionStatus
from ...domain.sections import (
    SECTION_REGISTRY,
    SectionModel,
    StatusRule,
    parse_section_payload,
)

SectionData = Union[SectionModel, Mapping[str, Any], None]


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, Mapping):
        return any(_is_filled(item) for item in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) > 0
    return bool(value)


def _graded(payload: SectionModel) -> SectionStatus:
    """Empty when no designated field is filled, complete when all are."""
    filled = [_is_filled(getattr(payload, name)) for name in payload.STATUS_FIELDS]
    if not any(filled):
        return SectionStatus.EMPTY
    if all(filled):
        return SectionStatus.COMPLETE
    return SectionStatus.PARTIAL


def _differs_from_default(payload: BaseModel, dotted: str) -> bool:
    owner: BaseModel = payload
    *parents, name = dotted.split(".")
    for parent in parents:
        owner = getattr(owner, parent)
    value = getattr(owner, name)
    default = type(owner).model_fields[name].get_default(call_default_factory=True)
    return _is_filled(value) and value != default


def _predicate(payload: SectionModel) -> SectionStatus:
    if any(_differs_from_default(payload, path) for path in payload.STATUS_FIELDS):
        return SectionStatus.COMPLETE
    return SectionStatus.EMPTY


def _presence(payload: SectionModel) -> SectionStatus:
    if any(_is_filled(getattr(payload, name)) for name in payload.STATUS_FIELDS):
        return SectionStatus.COMPLETE
    return SectionStatus.EMPTY


_RULES: Dict[StatusRule, Callable[[SectionModel], SectionStatus]] = {
    StatusRule.TRIPLE_FIELD: _graded,
    StatusRule.LIST_VALUED: _graded,
    StatusRule.MIXED: _graded,
    StatusRule.PREDICATE: _predicate,
    StatusRule.PRESENCE: _presence,
}


def classify(section_id: Union[SectionId, str], data: SectionData) -> SectionStatus:
    """Compute empty / partial / complete for one section.

    Args:
        section_id: Section the data belongs to
        data: Typed payload, raw dict, or None for a section never edited

    Raises:
        InvalidSectionPayloadError: data does not match the section schema
    """
    if data is None:
        return SectionStatus.EMPTY
    payload = parse_section_payload(data, section_id)
    return _RULES[payload.STATUS_RULE](payload)


def classify_all(sections: Mapping[SectionId, Optional[SectionModel]]) -> Dict[SectionId, SectionStatus]:
    """Status for every known section; sections without a payload are empty."""
    return {
        section_id: classify(section_id, sections.get(section_id))
        for section_id in SECTION_REGISTRY
    }

"""
Tooth status rules: chart colours and keyword-based status inference.

Free-text diagnoses and treatments come from dentists and from the voice
pipeline, so status inference is a case-insensitive substring match
against ordered keyword tables. The first matching row wins.
"""

from typing import Dict, Optional, Sequence, Tuple

from .enums.clinical import ToothStatus

STATUS_COLOR_CODES: Dict[ToothStatus, str] = {
    ToothStatus.HEALTHY: "#22c55e",
    ToothStatus.CARIES: "#ef4444",
    ToothStatus.FILLED: "#3b82f6",
    ToothStatus.CROWN: "#a855f7",
    ToothStatus.MISSING: "#6b7280",
    ToothStatus.ATTENTION: "#f97316",
    ToothStatus.EXTRACTION_NEEDED: "#f97316",
    ToothStatus.ROOT_CANAL: "#f97316",
    ToothStatus.IMPLANT: "#06b6d4",
}

_DIAGNOSIS_RULES: Sequence[Tuple[Tuple[str, ...], ToothStatus]] = (
    (("missing", "extracted", "extraction done"), ToothStatus.MISSING),
    (("pulpitis", "periapical", "endo"), ToothStatus.ATTENTION),
    (("fracture", "crack"), ToothStatus.ATTENTION),
    (("periodontal", "abscess"), ToothStatus.ATTENTION),
    (("impacted",), ToothStatus.ATTENTION),
    (("caries", "cavity", "decay", "demineral"), ToothStatus.CARIES),
)

_TREATMENT_RULES: Sequence[Tuple[Tuple[str, ...], ToothStatus]] = (
    (("root canal", "rct", "endodontic", "pulpitis", "root treatment"), ToothStatus.ROOT_CANAL),
    (("filling", "restoration", "composite", "amalgam", "restore"), ToothStatus.FILLED),
    (("crown", "onlay", "cap", "veneer", "jacket"), ToothStatus.CROWN),
    (("extraction", "removed", "pulled", "extract"), ToothStatus.MISSING),
    (("implant",), ToothStatus.IMPLANT),
    (("scaling", "polishing", "cleaning", "prophylaxis"), ToothStatus.HEALTHY),
    (("periodontal", "gum treatment", "perio"), ToothStatus.HEALTHY),
    (("pulpotomy", "pulp cap", "pulpectomy"), ToothStatus.FILLED),
    (("bridge",), ToothStatus.CROWN),
)

_SEVERE = ("deep", "severe", "irreversible")
_MILD = ("moderate", "shallow", "small", "incipient")
_DECAY = ("caries", "cavity", "decay")

_NEEDS_ATTENTION = frozenset(
    {ToothStatus.CARIES, ToothStatus.ATTENTION, ToothStatus.EXTRACTION_NEEDED}
)
_TREATED = frozenset(
    {
        ToothStatus.FILLED,
        ToothStatus.CROWN,
        ToothStatus.ROOT_CANAL,
        ToothStatus.IMPLANT,
        ToothStatus.HEALTHY,
    }
)


def _normalize(text: Optional[str]) -> str:
    return (text or "").lower().strip()


def _first_match(text: str, rules: Sequence[Tuple[Tuple[str, ...], ToothStatus]]) -> Optional[ToothStatus]:
    for keywords, status in rules:
        if any(keyword in text for keyword in keywords):
            return status
    return None


def status_color_code(status: ToothStatus) -> str:
    """Hex colour used to paint the tooth on the chart."""
    return STATUS_COLOR_CODES.get(ToothStatus(status), STATUS_COLOR_CODES[ToothStatus.HEALTHY])


def initial_status_from_diagnosis(diagnosis: Optional[str], plan: Optional[str] = None) -> ToothStatus:
    """Infer the pre-treatment status of a tooth from its diagnosis and plan.

    Observations that match nothing are charted as healthy.
    """
    text = f"{_normalize(diagnosis)} {_normalize(plan)}"
    return _first_match(text, _DIAGNOSIS_RULES) or ToothStatus.HEALTHY


def final_status_from_treatment(treatment: Optional[str]) -> Optional[ToothStatus]:
    """Infer the status a tooth ends in once the treatment is done.

    Returns None when the treatment text gives no usable hint.
    """
    text = _normalize(treatment)
    if not text:
        return None

    status = _first_match(text, _TREATMENT_RULES)
    if status is not None:
        return status

    # Treatment text that only restates the diagnosis
    if any(word in text for word in _SEVERE) and any(word in text for word in (*_DECAY, "pulp")):
        return ToothStatus.ROOT_CANAL
    if any(word in text for word in _MILD) and any(word in text for word in _DECAY):
        return ToothStatus.FILLED
    return None


def requires_attention(status: ToothStatus) -> bool:
    """True when the tooth still needs active treatment."""
    return ToothStatus(status) in _NEEDS_ATTENTION


def is_treatment_complete(status: ToothStatus) -> bool:
    return ToothStatus(status) in _TREATED

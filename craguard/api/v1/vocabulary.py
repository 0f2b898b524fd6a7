"""Translation between the dashboard's status words and the internal workflow states.

Both vocabularies are accepted on input (case-insensitive). Output always
carries the internal status plus its dashboard word. ``reported`` and
``in-remediation`` both mean Triaged; Triaged renders as ``in-remediation``.
"""

from craguard.core.errors import ValidationError
from craguard.schemas.vulnerability import STATUS_VALUES, VulnerabilityStatus

UI_TO_STATUS: dict[str, VulnerabilityStatus] = {
    "discovered": "Open",
    "reported": "Triaged",
    "in-remediation": "Triaged",
    "resolved": "Patched",
    "ignored": "Ignored",
}

STATUS_TO_UI: dict[str, str] = {
    "Open": "discovered",
    "Triaged": "in-remediation",
    "Patched": "resolved",
    "Ignored": "ignored",
}

_INTERNAL_BY_LOWER: dict[str, VulnerabilityStatus] = {s.lower(): s for s in STATUS_VALUES}


def to_internal_status(value: str) -> VulnerabilityStatus:
    key = value.strip().lower()
    if key in UI_TO_STATUS:
        return UI_TO_STATUS[key]
    if key in _INTERNAL_BY_LOWER:
        return _INTERNAL_BY_LOWER[key]
    accepted = sorted(UI_TO_STATUS) + sorted(STATUS_VALUES)
    raise ValidationError(f"Unknown status {value!r}; expected one of {', '.join(accepted)}")


def to_ui_status(status: str) -> str:
    return STATUS_TO_UI.get(status, status.lower())

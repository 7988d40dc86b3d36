"""
Status Taxonomy for the Water Permit Portal
Single source for status labels, badge categories and the application
lifecycle. Every endpoint, dashboard and the certificate renderer read
labels from here.
"""

from enum import Enum as PythonEnum
from typing import Dict, List, Optional, Tuple

from permit_portal.models.enums import (
    ApplicationStatus, PermitStatus, ComplianceStatus, InspectionStatus, SlaStatus, UserRole
)
from permit_portal.schemas.lookup import StatusBadge


class BadgeCategory(str, PythonEnum):
    """Visual category of a status badge"""
    NEUTRAL = "neutral"
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    DANGER = "danger"
    UNKNOWN = "unknown"


UNKNOWN_LABEL = "Unknown"

# entity -> status -> (label, category)
_STATUS_TABLE: Dict[str, Dict[PythonEnum, Tuple[str, BadgeCategory]]] = {
    "application": {
        ApplicationStatus.DRAFT: ("Draft", BadgeCategory.NEUTRAL),
        ApplicationStatus.SUBMITTED: ("Submitted", BadgeCategory.INFO),
        ApplicationStatus.UNDER_REVIEW: ("Under Review", BadgeCategory.INFO),
        ApplicationStatus.PENDING_INSPECTION: ("Pending Inspection", BadgeCategory.WARNING),
        ApplicationStatus.APPROVED: ("Approved", BadgeCategory.SUCCESS),
        ApplicationStatus.REJECTED: ("Rejected", BadgeCategory.DANGER),
        ApplicationStatus.REVISION_REQUIRED: ("Revision Required", BadgeCategory.WARNING),
        ApplicationStatus.CANCELLED: ("Cancelled", BadgeCategory.NEUTRAL),
    },
    "permit": {
        PermitStatus.ACTIVE: ("Active", BadgeCategory.SUCCESS),
        PermitStatus.EXPIRING_SOON: ("Expiring Soon", BadgeCategory.WARNING),
        PermitStatus.EXPIRED: ("Expired", BadgeCategory.DANGER),
        PermitStatus.SUSPENDED: ("Suspended", BadgeCategory.WARNING),
        PermitStatus.REVOKED: ("Revoked", BadgeCategory.DANGER),
    },
    "inspection": {
        ComplianceStatus.COMPLIANT: ("Compliant", BadgeCategory.SUCCESS),
        ComplianceStatus.MINOR_ISSUES: ("Minor Issues", BadgeCategory.WARNING),
        ComplianceStatus.MAJOR_VIOLATIONS: ("Major Violations", BadgeCategory.DANGER),
    },
    "inspection_status": {
        InspectionStatus.SCHEDULED: ("Scheduled", BadgeCategory.INFO),
        InspectionStatus.IN_PROGRESS: ("In Progress", BadgeCategory.WARNING),
        InspectionStatus.COMPLETED: ("Completed", BadgeCategory.SUCCESS),
        InspectionStatus.CANCELLED: ("Cancelled", BadgeCategory.NEUTRAL),
    },
    "sla": {
        SlaStatus.ON_TIME: ("On Time", BadgeCategory.SUCCESS),
        SlaStatus.OVERDUE: ("Overdue", BadgeCategory.DANGER),
    },
}

ENTITIES = tuple(_STATUS_TABLE)


def _normalise(code) -> str:
    """'Expiring-Soon', 'expiring_soon' and PermitStatus.EXPIRING_SOON all match"""
    value = getattr(code, "value", code)
    return str(value).strip().lower().replace("-", "_").replace(" ", "_")


# entity -> normalised code -> badge
_BADGES: Dict[str, Dict[str, StatusBadge]] = {
    entity: {
        _normalise(status): StatusBadge(code=status.value, label=label, category=category.value)
        for status, (label, category) in statuses.items()
    }
    for entity, statuses in _STATUS_TABLE.items()
}


def get_status_badge(entity: str, code) -> StatusBadge:
    """
    Map a status code to its display badge

    Unrecognised entities or codes (including None) fall back to the
    'Unknown' badge; this function never raises.
    """
    raw = "" if code is None else str(getattr(code, "value", code))
    badges = _BADGES.get(_normalise(entity or ""), {})
    badge = badges.get(_normalise(raw)) if raw else None
    if badge is None:
        return StatusBadge(code=raw, label=UNKNOWN_LABEL, category=BadgeCategory.UNKNOWN.value)
    return badge


def get_status_label(entity: str, code) -> str:
    return get_status_badge(entity, code).label


def list_status_badges(entity: Optional[str] = None) -> Dict[str, List[StatusBadge]]:
    """All known badges, optionally for one entity"""
    if entity is not None:
        return {entity: list(_BADGES.get(_normalise(entity), {}).values())}
    return {name: list(badges.values()) for name, badges in _BADGES.items()}


# Application lifecycle
TERMINAL_STATUSES = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.CANCELLED,
})

ALLOWED_TRANSITIONS: Dict[ApplicationStatus, frozenset] = {
    ApplicationStatus.DRAFT: frozenset({
        ApplicationStatus.SUBMITTED, ApplicationStatus.CANCELLED,
    }),
    ApplicationStatus.SUBMITTED: frozenset({
        ApplicationStatus.UNDER_REVIEW, ApplicationStatus.CANCELLED,
    }),
    ApplicationStatus.UNDER_REVIEW: frozenset({
        ApplicationStatus.PENDING_INSPECTION, ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED, ApplicationStatus.REVISION_REQUIRED,
        ApplicationStatus.CANCELLED,
    }),
    ApplicationStatus.PENDING_INSPECTION: frozenset({
        ApplicationStatus.APPROVED, ApplicationStatus.REJECTED,
        ApplicationStatus.REVISION_REQUIRED, ApplicationStatus.CANCELLED,
    }),
    # Resubmission starts a new linked draft; the original can only be closed
    ApplicationStatus.REVISION_REQUIRED: frozenset({
        ApplicationStatus.CANCELLED,
    }),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.CANCELLED: frozenset(),
}

# Workflow action recorded in the status history for each target status
TRANSITION_ACTIONS: Dict[ApplicationStatus, str] = {
    ApplicationStatus.SUBMITTED: "submit",
    ApplicationStatus.UNDER_REVIEW: "start_review",
    ApplicationStatus.PENDING_INSPECTION: "request_inspection",
    ApplicationStatus.APPROVED: "approve",
    ApplicationStatus.REJECTED: "reject",
    ApplicationStatus.REVISION_REQUIRED: "request_revision",
    ApplicationStatus.CANCELLED: "cancel",
}

# Roles allowed to move an application into each status (admin always allowed).
# Applicants may only act on their own applications.
TRANSITION_ROLES: Dict[ApplicationStatus, frozenset] = {
    ApplicationStatus.SUBMITTED: frozenset({UserRole.APPLICANT}),
    ApplicationStatus.UNDER_REVIEW: frozenset({UserRole.REVIEWER}),
    ApplicationStatus.PENDING_INSPECTION: frozenset({UserRole.REVIEWER}),
    ApplicationStatus.APPROVED: frozenset({UserRole.APPROVER}),
    ApplicationStatus.REJECTED: frozenset({UserRole.REVIEWER, UserRole.APPROVER}),
    ApplicationStatus.REVISION_REQUIRED: frozenset({UserRole.REVIEWER, UserRole.APPROVER}),
    ApplicationStatus.CANCELLED: frozenset({UserRole.APPLICANT}),
}


def _as_application_status(value) -> Optional[ApplicationStatus]:
    try:
        return ApplicationStatus(getattr(value, "value", value))
    except ValueError:
        return None


def can_transition(from_status, to_status) -> bool:
    """Check a status change against the application lifecycle"""
    source = _as_application_status(from_status)
    target = _as_application_status(to_status)
    if source is None or target is None:
        return False
    return target in ALLOWED_TRANSITIONS.get(source, frozenset())


def is_terminal(status) -> bool:
    return _as_application_status(status) in TERMINAL_STATUSES


def allowed_next_statuses(status) -> List[ApplicationStatus]:
    source = _as_application_status(status)
    if source is None:
        return []
    return sorted(ALLOWED_TRANSITIONS[source], key=lambda s: list(ApplicationStatus).index(s))

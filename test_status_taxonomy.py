"""
Status taxonomy tests
Badge mapping totality and the application lifecycle table
"""

import pytest

from permit_portal.models.enums import (
    ApplicationStatus, ComplianceStatus, InspectionStatus, PermitStatus, SlaStatus
)
from permit_portal.services.status_taxonomy import (
    ALLOWED_TRANSITIONS, TERMINAL_STATUSES, TRANSITION_ROLES, allowed_next_statuses,
    can_transition, get_status_badge, get_status_label, is_terminal, list_status_badges
)

ENTITY_ENUMS = [
    ("application", ApplicationStatus),
    ("permit", PermitStatus),
    ("inspection", ComplianceStatus),
    ("inspection_status", InspectionStatus),
    ("sla", SlaStatus),
]


@pytest.mark.parametrize("entity,enum_class", ENTITY_ENUMS)
def test_every_known_status_has_a_label(entity, enum_class):
    for member in enum_class:
        badge = get_status_badge(entity, member.value)
        assert badge.label
        assert badge.label != "Unknown"
        assert badge.category != "unknown"
        assert badge.code == member.value


@pytest.mark.parametrize("code", ["", "approved!", "PENDING", "0", None, 42, "expiring soon soon"])
def test_unrecognised_codes_fall_back_to_unknown(code):
    badge = get_status_badge("application", code)
    assert badge.label == "Unknown"
    assert badge.category == "unknown"


def test_unknown_entity_never_raises():
    badge = get_status_badge("spaceship", "approved")
    assert badge.label == "Unknown"
    assert get_status_badge(None, "approved").label == "Unknown"


def test_codes_are_matched_loosely():
    """Dashes, underscores, spaces and case all match the same badge"""
    for code in ("expiring-soon", "expiring_soon", "Expiring Soon", PermitStatus.EXPIRING_SOON):
        assert get_status_label("permit", code) == "Expiring Soon"
    assert get_status_label("application", "UNDER-REVIEW") == "Under Review"


def test_required_badges_are_present():
    assert get_status_label("application", "revision_required") == "Revision Required"
    assert get_status_label("permit", "expired") == "Expired"
    assert get_status_label("inspection", "major_violations") == "Major Violations"


def test_list_status_badges():
    everything = list_status_badges()
    assert set(everything) == {entity for entity, _ in ENTITY_ENUMS}
    assert len(everything["application"]) == len(ApplicationStatus)

    permits_only = list_status_badges("permit")
    assert list(permits_only) == ["permit"]
    assert {b.code for b in permits_only["permit"]} == {s.value for s in PermitStatus}


def test_lifecycle_moves_forward():
    assert can_transition(ApplicationStatus.DRAFT, ApplicationStatus.SUBMITTED)
    assert can_transition("submitted", "under_review")
    assert can_transition(ApplicationStatus.UNDER_REVIEW, ApplicationStatus.PENDING_INSPECTION)
    assert can_transition(ApplicationStatus.PENDING_INSPECTION, ApplicationStatus.APPROVED)
    assert can_transition(ApplicationStatus.UNDER_REVIEW, ApplicationStatus.REJECTED)
    assert can_transition(ApplicationStatus.REVISION_REQUIRED, ApplicationStatus.CANCELLED)

    assert not can_transition(ApplicationStatus.REVISION_REQUIRED, ApplicationStatus.SUBMITTED)
    assert not can_transition(ApplicationStatus.DRAFT, ApplicationStatus.APPROVED)
    assert not can_transition(ApplicationStatus.SUBMITTED, ApplicationStatus.DRAFT)
    assert not can_transition(ApplicationStatus.PENDING_INSPECTION, ApplicationStatus.UNDER_REVIEW)
    assert not can_transition("draft", "nonsense")


def test_no_transition_moves_backward():
    order = list(ApplicationStatus)
    for source, targets in ALLOWED_TRANSITIONS.items():
        for target in targets:
            assert order.index(target) > order.index(source), (source, target)


def test_cancel_is_reachable_from_every_open_status():
    for status in ApplicationStatus:
        if status in TERMINAL_STATUSES:
            continue
        assert can_transition(status, ApplicationStatus.CANCELLED), status


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert is_terminal(status)
        assert ALLOWED_TRANSITIONS[status] == frozenset()
        assert allowed_next_statuses(status) == []
    assert not is_terminal(ApplicationStatus.DRAFT)


def test_allowed_next_statuses_follow_enum_order():
    assert allowed_next_statuses("under_review") == [
        ApplicationStatus.PENDING_INSPECTION,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.REVISION_REQUIRED,
        ApplicationStatus.CANCELLED,
    ]
    assert allowed_next_statuses("unknown") == []


def test_every_reachable_status_has_an_owner_role():
    reachable = set().union(*ALLOWED_TRANSITIONS.values())
    assert reachable <= set(TRANSITION_ROLES)

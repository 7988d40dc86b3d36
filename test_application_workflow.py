"""
Application lifecycle API tests
From draft through review and inspection to an issued permit and its certificate
"""

import pytest

from permit_portal.models.enums import UserRole

APPLICATION = {
    "application_type": "agricultural",
    "water_source": "river",
    "water_purpose": "irrigation",
    "water_usage_volume": 250,
    "water_usage_unit": "m3/day",
    "province": "Eastern",
    "district": "Nyagatare",
    "project_title": "Nyagatare rice irrigation",
    "taking_method": "Pump station on the Muvumba river",
}


@pytest.fixture
def applicant_headers(register_applicant, login):
    return login(register_applicant(), "Applicant123!")


@pytest.fixture
def staff_headers(make_staff, login):
    """Headers for one user per staff role"""
    headers = {}
    for role in (UserRole.REVIEWER, UserRole.INSPECTOR, UserRole.APPROVER, UserRole.ADMIN):
        make_staff(role)
        headers[role] = login(f"{role.value}@rwb.gov.rw")
    return headers


def _transition(client, application_id, headers, new_status, **extra):
    return client.post(
        f"/api/v1/applications/{application_id}/transition",
        headers=headers,
        json={"new_status": new_status, **extra},
    )


def _create_draft(client, headers):
    response = client.post("/api/v1/applications/", headers=headers, json=APPLICATION)
    assert response.status_code == 201, response.text
    return response.json()


def test_full_workflow(client, clock, applicant_headers, staff_headers):
    draft = _create_draft(client, applicant_headers)
    assert draft["status"] == "draft"
    assert draft["status_label"] == "Draft"
    assert draft["application_number"] == "RWB-24-00001"
    assert draft["allowed_transitions"] == ["submitted", "cancelled"]
    app_id = draft["id"]

    response = _transition(client, app_id, applicant_headers, "submitted")
    assert response.status_code == 200, response.text
    submitted = response.json()
    assert submitted["status"] == "submitted"
    assert submitted["sla_status"] == "on_time"
    assert submitted["due_date"] is not None

    clock.advance(days=2)
    reviewer = staff_headers[UserRole.REVIEWER]
    assert _transition(client, app_id, reviewer, "under_review").status_code == 200
    response = _transition(client, app_id, reviewer, "pending_inspection", comment="Site visit needed")
    assert response.status_code == 200
    assert response.json()["status_label"] == "Pending Inspection"

    clock.advance(days=3)
    response = client.post("/api/v1/inspections/", headers=staff_headers[UserRole.INSPECTOR], json={
        "application_id": app_id,
        "inspection_type": "initial",
        "status": "completed",
        "completed_date": clock().isoformat(),
        "compliance_status": "compliant",
        "findings": {"water_source_verified": True, "infrastructure_condition": "good"},
        "recommendations": "Install a flow meter at the intake",
    })
    assert response.status_code == 201, response.text
    assert response.json()["compliance_label"] == "Compliant"

    clock.advance(days=1)
    approver = staff_headers[UserRole.APPROVER]
    response = _transition(client, app_id, approver, "approved", comment="Meets allocation rules")
    assert response.status_code == 200
    approved = response.json()
    assert approved["status"] == "approved"
    assert approved["allowed_transitions"] == []

    response = client.post("/api/v1/permits/", headers=approver, json={
        "application_id": app_id,
        "conditions": ["Report monthly abstraction volumes", "Maintain a 10 m riparian buffer"],
    })
    assert response.status_code == 201, response.text
    permit = response.json()
    assert permit["permit_number"] == "PRM-2024-00001"
    assert permit["issued_date"] == "2024-06-26"
    assert permit["expiry_date"] == "2029-06-26"
    assert permit["status"] == "active"
    assert permit["status_label"] == "Active"
    assert permit["purpose"] == "irrigation"

    # A second permit for the same application is refused
    response = client.post("/api/v1/permits/", headers=approver, json={"application_id": app_id})
    assert response.status_code == 422

    response = client.get(f"/api/v1/permits/{permit['id']}/certificate", headers=applicant_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert f'filename="{permit["permit_number"]}.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")

    response = client.get(f"/api/v1/applications/{app_id}/history", headers=applicant_headers)
    assert response.status_code == 200
    history = response.json()
    assert [h["new_status"] for h in history] == [
        "draft", "submitted", "under_review", "pending_inspection", "approved"
    ]
    assert history[3]["comment"] == "Site visit needed"


def test_permit_status_is_derived_from_the_clock(client, clock, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    _transition(client, app_id, applicant_headers, "submitted")
    _transition(client, app_id, staff_headers[UserRole.REVIEWER], "under_review")
    approver = staff_headers[UserRole.APPROVER]
    _transition(client, app_id, approver, "approved")

    response = client.post("/api/v1/permits/", headers=approver, json={
        "application_id": app_id, "issued_date": "2024-01-01", "expiry_date": "2024-06-25",
    })
    assert response.status_code == 201
    permit_id = response.json()["id"]
    assert response.json()["status"] == "expiring-soon"
    assert response.json()["days_until_expiry"] == 5

    response = client.get("/api/v1/permits/", headers=approver, params={"status": "expiring-soon"})
    assert response.json()["total"] == 1

    clock.advance(days=11)
    response = client.get(f"/api/v1/permits/{permit_id}", headers=applicant_headers)
    assert response.json()["status"] == "expired"
    assert response.json()["status_label"] == "Expired"

    response = client.get("/api/v1/permits/", headers=approver, params={"status": "expired"})
    assert response.json()["total"] == 1
    response = client.get("/api/v1/permits/", headers=approver, params={"status": "active"})
    assert response.json()["total"] == 0

    response = client.put(f"/api/v1/permits/{permit_id}", headers=approver, json={"revoked": True})
    assert response.json()["status"] == "revoked"


def test_invalid_transition(client, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    response = _transition(client, app_id, staff_headers[UserRole.APPROVER], "approved")
    assert response.status_code == 422
    assert response.json()["type"] == "invalid_transition"

    response = client.get(f"/api/v1/applications/{app_id}", headers=applicant_headers)
    assert response.json()["status"] == "draft"


def test_role_cannot_make_someone_elses_transition(client, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    _transition(client, app_id, applicant_headers, "submitted")

    # Applicants cannot review their own work
    response = _transition(client, app_id, applicant_headers, "under_review")
    assert response.status_code == 403
    assert response.json()["type"] == "permission_denied"

    response = _transition(client, app_id, staff_headers[UserRole.INSPECTOR], "under_review")
    assert response.status_code == 403


def test_rejection_needs_a_reason(client, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    _transition(client, app_id, applicant_headers, "submitted")
    reviewer = staff_headers[UserRole.REVIEWER]
    _transition(client, app_id, reviewer, "under_review")

    assert _transition(client, app_id, reviewer, "rejected").status_code == 422
    response = _transition(client, app_id, reviewer, "rejected", rejection_reason="Catchment fully allocated")
    assert response.status_code == 200
    assert response.json()["rejection_reason"] == "Catchment fully allocated"


def test_revision_cycle(client, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    _transition(client, app_id, applicant_headers, "submitted")
    reviewer = staff_headers[UserRole.REVIEWER]
    _transition(client, app_id, reviewer, "under_review")
    response = _transition(client, app_id, reviewer, "revision_required", revision_notes="Attach the land title")
    assert response.json()["status_label"] == "Revision Required"
    assert response.json()["allowed_transitions"] == ["cancelled"]

    # The sent-back application never moves back to submitted
    response = _transition(client, app_id, applicant_headers, "submitted")
    assert response.status_code == 422
    assert response.json()["type"] == "invalid_transition"

    response = client.put(f"/api/v1/applications/{app_id}", headers=applicant_headers,
                          json={"land_ownership": "Freehold title 1234"})
    assert response.status_code == 409

    assert client.post(f"/api/v1/applications/{app_id}/resubmit", headers=reviewer).status_code == 403

    response = client.post(f"/api/v1/applications/{app_id}/resubmit", headers=applicant_headers)
    assert response.status_code == 201, response.text
    draft = response.json()
    assert draft["status"] == "draft"
    assert draft["application_number"] == "RWB-24-00002"
    assert draft["previous_application_id"] == app_id
    assert draft["project_title"] == APPLICATION["project_title"]

    response = client.get(f"/api/v1/applications/{app_id}", headers=applicant_headers)
    assert response.json()["status"] == "cancelled"
    history = client.get(f"/api/v1/applications/{app_id}/history", headers=applicant_headers).json()
    assert {"new_status": "cancelled", "comment": "Superseded by RWB-24-00002"} in [
        {"new_status": h["new_status"], "comment": h["comment"]} for h in history
    ]

    # Only an application awaiting revision can be resubmitted
    response = client.post(f"/api/v1/applications/{app_id}/resubmit", headers=applicant_headers)
    assert response.status_code == 422

    response = client.put(f"/api/v1/applications/{draft['id']}", headers=applicant_headers,
                          json={"land_ownership": "Freehold title 1234"})
    assert response.status_code == 200
    assert response.json()["land_ownership"] == "Freehold title 1234"

    response = client.put(f"/api/v1/applications/{draft['id']}", headers=applicant_headers,
                          json={"internal_notes": "approve quickly"})
    assert response.status_code == 403

    assert _transition(client, draft["id"], applicant_headers, "submitted").status_code == 200
    response = client.put(f"/api/v1/applications/{draft['id']}", headers=applicant_headers,
                          json={"project_title": "Changed"})
    assert response.status_code == 409


def test_applicants_only_see_their_own_applications(client, register_applicant, login, staff_headers):
    first = login(register_applicant("first@example.rw"), "Applicant123!")
    second = login(register_applicant("second@example.rw"), "Applicant123!")
    app_id = _create_draft(client, first)["id"]
    _create_draft(client, second)

    response = client.get(f"/api/v1/applications/{app_id}", headers=second)
    assert response.status_code == 403

    response = client.get("/api/v1/applications/", headers=second)
    assert response.json()["total"] == 1

    response = client.get("/api/v1/applications/", headers=staff_headers[UserRole.REVIEWER])
    assert response.json()["total"] == 2

    response = client.delete(f"/api/v1/applications/{app_id}", headers=second)
    assert response.status_code == 403
    response = client.delete(f"/api/v1/applications/{app_id}", headers=first)
    assert response.status_code == 200
    response = client.get(f"/api/v1/applications/{app_id}", headers=first)
    assert response.status_code == 404
    assert response.json()["type"] == "not_found"


def test_unknown_application(client, applicant_headers):
    response = client.get("/api/v1/applications/00000000-0000-0000-0000-000000000000", headers=applicant_headers)
    assert response.status_code == 404


def test_sla_refresh_marks_overdue_work(client, clock, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    _transition(client, app_id, applicant_headers, "submitted")

    clock.advance(days=45)
    admin = staff_headers[UserRole.ADMIN]
    response = client.post("/api/v1/applications/sla-refresh", headers=admin)
    assert response.status_code == 200
    assert response.json()["updated"] == 1

    response = client.get("/api/v1/applications/", headers=admin, params={"sla_status": "overdue"})
    assert response.json()["total"] == 1


def test_role_dashboards(client, applicant_headers, staff_headers):
    app_id = _create_draft(client, applicant_headers)["id"]
    _transition(client, app_id, applicant_headers, "submitted")

    response = client.get("/api/v1/dashboard/applicant", headers=applicant_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["applications"]["total"] == 1
    assert data["permits"]["total"] == 0
    assert data["work_queue"] == []

    response = client.get("/api/v1/dashboard/reviewer", headers=staff_headers[UserRole.REVIEWER])
    data = response.json()
    assert [item["id"] for item in data["work_queue"]] == [app_id]
    assert data["work_queue"][0]["status_label"] == "Submitted"

    response = client.get("/api/v1/dashboard/admin", headers=staff_headers[UserRole.REVIEWER])
    assert response.status_code == 403

    response = client.get("/api/v1/dashboard/inspector", headers=staff_headers[UserRole.ADMIN])
    assert response.status_code == 200
    assert response.json()["inspections"]["total"] == 0

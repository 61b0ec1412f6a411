#!/usr/bin/env python3
"""
Status Workflow Tests

Transition table, history, notifications and dashboard counts.
Run: pytest scripts/test_status.py
"""
import pytest

from app.services.status_service import (
    can_transition, InvalidStatusTransition, ALLOWED_TRANSITIONS, PENDING, UNDER_REVIEW,
    DOCUMENT_VERIFICATION, INTERVIEW_SCHEDULED, APPROVED, REJECTED
)
from conftest import auth, application_payload, move_status


# ============================================================
# TRANSITION TABLE
# ============================================================

@pytest.mark.parametrize("current,target", [
    (PENDING, UNDER_REVIEW),
    (PENDING, DOCUMENT_VERIFICATION),
    (PENDING, REJECTED),
    (UNDER_REVIEW, DOCUMENT_VERIFICATION),
    (DOCUMENT_VERIFICATION, UNDER_REVIEW),
    (DOCUMENT_VERIFICATION, INTERVIEW_SCHEDULED),
    (INTERVIEW_SCHEDULED, DOCUMENT_VERIFICATION),
    (INTERVIEW_SCHEDULED, APPROVED),
    (INTERVIEW_SCHEDULED, REJECTED),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (PENDING, APPROVED),
    (PENDING, INTERVIEW_SCHEDULED),
    (UNDER_REVIEW, PENDING),
    (UNDER_REVIEW, APPROVED),
    (APPROVED, REJECTED),
    (REJECTED, PENDING),
])
def test_forbidden_transitions(current, target):
    assert not can_transition(current, target)


def test_terminal_states_have_no_exits():
    assert ALLOWED_TRANSITIONS[APPROVED] == set()
    assert ALLOWED_TRANSITIONS[REJECTED] == set()


def test_invalid_transition_is_value_error():
    error = InvalidStatusTransition(PENDING, APPROVED)
    assert isinstance(error, ValueError)
    assert "Pending" in str(error) and "Approved" in str(error)


# ============================================================
# API
# ============================================================

def test_full_happy_path_records_history(client, submitted, oas_staff):
    application_id = submitted["application_id"]
    move_status(client, oas_staff["token"], application_id,
                "Under Review", "Document Verification", "Interview Scheduled", "Approved")

    body = client.get(f"/api/application/{application_id}", headers=auth(submitted["token"])).json()
    assert body["status"] == "Approved"
    assert [(h["from_status"], h["to_status"]) for h in body["status_history"]] == [
        ("Pending", "Under Review"),
        ("Under Review", "Document Verification"),
        ("Document Verification", "Interview Scheduled"),
        ("Interview Scheduled", "Approved"),
    ]
    assert all(h["changed_by"] == oas_staff["user_id"] for h in body["status_history"])


def test_illegal_transition_returns_400(client, submitted, oas_staff):
    response = client.put("/api/application/status", headers=auth(oas_staff["token"]),
                          json={"application_id": submitted["application_id"], "status": "Approved"})
    assert response.status_code == 400
    assert "Cannot change status" in response.json()["detail"]


def test_same_status_is_noop(client, submitted, oas_staff):
    response = client.put("/api/application/status", headers=auth(oas_staff["token"]),
                          json={"application_id": submitted["application_id"], "status": "Pending"})
    assert response.status_code == 200
    assert response.json()["status_history"] == []


def test_unknown_status_rejected(client, submitted, oas_staff):
    response = client.put("/api/application/status", headers=auth(oas_staff["token"]),
                          json={"application_id": submitted["application_id"], "status": "Done"})
    assert response.status_code == 422


def test_status_change_requires_permission(client, submitted):
    response = client.put("/api/application/status", headers=auth(submitted["token"]),
                          json={"application_id": submitted["application_id"], "status": "Under Review"})
    assert response.status_code == 403


def test_status_change_notifies_applicant(client, submitted, oas_staff):
    move_status(client, oas_staff["token"], submitted["application_id"], "Rejected")
    notifications = client.get("/api/notifications", headers=auth(submitted["token"])).json()["notifications"]
    latest = notifications[0]
    assert latest["type"] == "scholarship_rejected"
    assert latest["priority"] == "urgent"
    assert latest["title"] == "Application Status: Rejected"

    activity = client.get("/api/activity/me", headers=auth(submitted["token"])).json()
    assert activity[0]["activity_type"] == "status_changed"
    assert activity[0]["status"] == "Rejected"


def test_approval_notification_priority(client, submitted, oas_staff):
    move_status(client, oas_staff["token"], submitted["application_id"],
                "Document Verification", "Interview Scheduled", "Approved")
    latest = client.get("/api/notifications", headers=auth(submitted["token"])).json()["notifications"][0]
    assert latest["type"] == "scholarship_approved"
    assert latest["priority"] == "high"


def test_dashboard_stats(client, make_applicant, oas_staff):
    ids = []
    for _ in range(4):
        user = make_applicant()
        ids.append(client.post("/api/application", headers=auth(user["token"]),
                               json=application_payload()).json()["id"])
    move_status(client, oas_staff["token"], ids[0], "Under Review")
    move_status(client, oas_staff["token"], ids[1], "Rejected")
    move_status(client, oas_staff["token"], ids[2], "Document Verification", "Interview Scheduled", "Approved")

    stats = client.get("/api/oas/dashboard-stats", headers=auth(oas_staff["token"])).json()
    assert stats == {
        "new_applications": 1,
        "under_review": 1,
        "document_verification": 0,
        "scheduled_interviews": 0,
        "active_scholars": 1,
        "rejected": 1,
        "total_applications": 4,
    }

#!/usr/bin/env python3
"""
Interview, Evaluation, Panelist and Approval Form Tests

Run: pytest scripts/test_interviews_evaluations.py
"""
import pytest

from conftest import auth, move_status, past_window, future_window


@pytest.fixture
def panelist(make_staff):
    return make_staff("panelist", "Paula Panelist")


@pytest.fixture
def verified(client, submitted, oas_staff):
    """Submitted application moved to Document Verification."""
    move_status(client, oas_staff["token"], submitted["application_id"], "Document Verification")
    return submitted


def schedule(client, token, application_id, interviewer, window):
    return client.post("/api/interviews", headers=auth(token),
                       json={"application_id": application_id, "interviewer": interviewer, **window})


@pytest.fixture
def interviewed(client, verified, oas_staff, panelist):
    """Application with an interview that already ended."""
    response = schedule(client, oas_staff["token"], verified["application_id"], panelist["user_id"], past_window())
    assert response.status_code == 201, response.text
    return {**verified, "interview_id": response.json()["id"]}


def rubric(evaluatee: int, overall: float = 4.5) -> dict:
    return {
        "evaluatee_user": evaluatee,
        "attendance_and_punctuality": {"regular_attendance": 5, "promptness_in_reporting_for_duty": 4.5},
        "quality_of_work_output": {
            "accuracy_and_thoroughness_of_work": 4,
            "organization_and_or_presentation_neatness_of_work": 4.5,
            "effectiveness": 4
        },
        "quantity_of_work_output": {
            "accomplishes_more_work_on_the_given_time": 4,
            "timeliness_in_accomplishing_task_duties": 4.5
        },
        "attitude_and_work_behavior": {
            "sense_of_responsibility_and_urgency": 5,
            "dependability_and_reliability": 5,
            "industry_and_resourcefulness": 4,
            "alertness_and_initiative": 4,
            "sociability_and_pleasant_disposition": 5
        },
        "remarks_and_recommendation_by_immediate_supervisor": "Reliable scholar",
        "overall_rating": overall
    }


# ============================================================
# INTERVIEWS
# ============================================================

def test_schedule_moves_status(client, verified, oas_staff, panelist):
    response = schedule(client, oas_staff["token"], verified["application_id"], panelist["user_id"], future_window())
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["interviewer_name"] == "Paula Panelist"
    assert body["application"]["status"] == "Interview Scheduled"

    application = client.get(f"/api/application/{verified['application_id']}",
                             headers=auth(verified["token"])).json()
    assert application["status"] == "Interview Scheduled"
    assert application["status_history"][-1]["remarks"] == "Interview scheduled"

    latest = client.get("/api/notifications", headers=auth(verified["token"])).json()["notifications"][0]
    assert latest["type"] == "interview_scheduled"


def test_schedule_keeps_other_statuses(client, submitted, oas_staff, panelist):
    response = schedule(client, oas_staff["token"], submitted["application_id"], panelist["user_id"], future_window())
    assert response.status_code == 201
    assert response.json()["application"]["status"] == "Pending"

    entry = client.get("/api/activity/me", headers=auth(submitted["token"])).json()[0]
    assert entry["activity_type"] == "interview_scheduled"
    assert entry["status"] == "Pending"


def test_schedule_rejected_application(client, submitted, oas_staff, panelist):
    move_status(client, oas_staff["token"], submitted["application_id"], "Rejected")
    response = schedule(client, oas_staff["token"], submitted["application_id"], panelist["user_id"], future_window())
    assert response.status_code == 400


def test_schedule_validation(client, verified, oas_staff, panelist):
    token, application_id = oas_staff["token"], verified["application_id"]
    window = future_window()
    backwards = {"start_time": window["end_time"], "end_time": window["start_time"]}
    assert schedule(client, token, application_id, panelist["user_id"], backwards).status_code == 400
    assert schedule(client, token, application_id, 99999, window).status_code == 404
    assert schedule(client, token, "64b000000000000000000000", panelist["user_id"], window).status_code == 404

    assert schedule(client, token, application_id, panelist["user_id"], window).status_code == 201
    assert schedule(client, token, application_id, panelist["user_id"], window).status_code == 409


def test_schedule_requires_permission(client, verified, panelist):
    response = schedule(client, verified["token"], verified["application_id"], panelist["user_id"], future_window())
    assert response.status_code == 403


def test_interview_views(client, interviewed, oas_staff, panelist):
    staff = auth(oas_staff["token"])
    mine = client.get("/api/interviews/me", headers=auth(interviewed["token"]))
    assert mine.status_code == 200
    assert mine.json()["id"] == interviewed["interview_id"]

    assigned = client.get("/api/interviews/assigned", headers=auth(panelist["token"])).json()
    assert [i["id"] for i in assigned] == [interviewed["interview_id"]]

    by_user = client.get(f"/api/interviews/user/{interviewed['user_id']}", headers=staff)
    assert by_user.json()["id"] == interviewed["interview_id"]

    listed = client.get("/api/interviews", headers=staff, params={"status": "Interview Scheduled"}).json()
    assert listed["total"] == 1
    empty = client.get("/api/interviews", headers=staff, params={"status": "Approved"}).json()
    assert empty["total"] == 0


def test_applicant_reschedules_own_interview(client, interviewed):
    window = future_window(days_ahead=5)
    response = client.patch("/api/interviews/me/time", headers=auth(interviewed["token"]), json=window)
    assert response.status_code == 200
    assert response.json()["start_time"].startswith(window["start_time"][:16])

    bad = client.patch("/api/interviews/me/time", headers=auth(interviewed["token"]),
                       json={"end_time": "2000-01-01T00:00:00"})
    assert bad.status_code == 400


def test_staff_updates_interviewer(client, interviewed, oas_staff, make_staff):
    other = make_staff("panelist", "Pedro Panelist")
    response = client.patch(f"/api/interviews/{interviewed['interview_id']}", headers=auth(oas_staff["token"]),
                            json={"interviewer": other["user_id"]})
    assert response.status_code == 200
    assert response.json()["interviewer_name"] == "Pedro Panelist"


def test_recommendation_after_interview(client, interviewed, panelist, oas_staff):
    path = f"/api/interviews/{interviewed['interview_id']}/recommendation"
    response = client.post(path, headers=auth(panelist["token"]),
                           json={"decision": "recommended", "remarks": "Articulate"})
    assert response.status_code == 200
    assert response.json()["recommendation"]["decision"] == "recommended"
    assert response.json()["recommendation"]["submitted_by"] == panelist["user_id"]

    application = client.get(f"/api/application/{interviewed['application_id']}",
                             headers=auth(oas_staff["token"])).json()
    assert application["approvals_summary"]["interviewed_by"] == [panelist["user_id"]]


def test_recommendation_rules(client, verified, oas_staff, panelist, make_staff):
    interview_id = schedule(client, oas_staff["token"], verified["application_id"],
                            panelist["user_id"], future_window()).json()["id"]
    path = f"/api/interviews/{interview_id}/recommendation"

    early = client.post(path, headers=auth(panelist["token"]), json={"decision": "recommended"})
    assert early.status_code == 400

    outsider = make_staff("panelist")
    response = client.post(path, headers=auth(outsider["token"]), json={"decision": "not_recommended"})
    assert response.status_code == 403


def test_delete_interview(client, interviewed, oas_staff):
    staff = auth(oas_staff["token"])
    assert client.delete(f"/api/interviews/{interviewed['interview_id']}", headers=staff).status_code == 200
    assert client.get(f"/api/interviews/{interviewed['interview_id']}", headers=staff).status_code == 404
    assert client.delete(f"/api/interviews/user/{interviewed['user_id']}", headers=staff).status_code == 404


# ============================================================
# EVALUATIONS
# ============================================================

@pytest.fixture
def supervisor(make_staff):
    return make_staff("nas_supervisor", "Sam Supervisor")


def test_create_and_read_evaluation(client, interviewed, supervisor):
    headers = auth(supervisor["token"])
    response = client.post("/api/evaluations", headers=headers, json=rubric(interviewed["user_id"]))
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["evaluatee_name"] == "Juan Dela Cruz"
    assert body["evaluated_by"] == supervisor["user_id"]
    assert body["time_keeping_record"]["unexcused_absences"] == 0

    listed = client.get("/api/evaluations", headers=headers, params={"search": "juan"}).json()
    assert listed["total"] == 1
    none = client.get("/api/evaluations", headers=headers, params={"search": "nobody"}).json()
    assert none["total"] == 0


def test_evaluation_requires_finished_interview(client, verified, supervisor, oas_staff, panelist):
    headers = auth(supervisor["token"])
    assert client.post("/api/evaluations", headers=headers, json=rubric(verified["user_id"])).status_code == 400

    schedule(client, oas_staff["token"], verified["application_id"], panelist["user_id"], future_window())
    assert client.post("/api/evaluations", headers=headers, json=rubric(verified["user_id"])).status_code == 400

    assert client.post("/api/evaluations", headers=headers, json=rubric(99999)).status_code == 404


def test_evaluation_rating_bounds(client, interviewed, supervisor):
    response = client.post("/api/evaluations", headers=auth(supervisor["token"]),
                           json=rubric(interviewed["user_id"], overall=5.5))
    assert response.status_code == 422


def test_update_evaluation_and_timekeeping(client, interviewed, supervisor):
    headers = auth(supervisor["token"])
    evaluation_id = client.post("/api/evaluations", headers=headers,
                                json=rubric(interviewed["user_id"])).json()["id"]

    updated = client.patch(f"/api/evaluations/{evaluation_id}", headers=headers,
                           json={"overall_rating": 3.5, "remarks_comments_by_the_nas": "Thank you"})
    assert updated.status_code == 200
    assert updated.json()["overall_rating"] == 3.5
    assert updated.json()["remarks_comments_by_the_nas"] == "Thank you"

    counters = client.patch(f"/api/evaluations/{evaluation_id}/timekeeping", headers=headers,
                            json={"excused_absences": 2, "under_time": 1})
    assert counters.status_code == 200
    assert counters.json()["excused_absences"] == 2

    again = client.patch(f"/api/evaluations/{evaluation_id}/timekeeping", headers=headers,
                         json={"failure_to_punch": 3})
    record = again.json()
    assert record["excused_absences"] == 2
    assert record["failure_to_punch"] == 3

    negative = client.patch(f"/api/evaluations/{evaluation_id}/timekeeping", headers=headers,
                            json={"under_time": -1})
    assert negative.status_code == 422

    assert client.get(f"/api/evaluations/{evaluation_id}/timekeeping", headers=headers).json()["under_time"] == 1


def test_evaluation_null_fields_are_ignored(client, interviewed, supervisor):
    headers = auth(supervisor["token"])
    evaluation_id = client.post("/api/evaluations", headers=headers,
                                json=rubric(interviewed["user_id"])).json()["id"]

    only_nulls = client.patch(f"/api/evaluations/{evaluation_id}", headers=headers,
                              json={"overall_rating": None, "quality_of_work_output": None})
    assert only_nulls.status_code == 400

    updated = client.patch(f"/api/evaluations/{evaluation_id}", headers=headers,
                           json={"overall_rating": None, "remarks_comments_by_the_nas": "Noted"})
    assert updated.status_code == 200
    assert updated.json()["overall_rating"] == 4.5
    assert client.get(f"/api/evaluations/{evaluation_id}", headers=headers).json()["quality_of_work_output"]


def test_evaluation_search_matches_wildcards_literally(client, interviewed, supervisor):
    headers = auth(supervisor["token"])
    client.post("/api/evaluations", headers=headers, json=rubric(interviewed["user_id"]))
    assert client.get("/api/evaluations", headers=headers, params={"search": "%"}).json()["total"] == 0
    assert client.get("/api/evaluations", headers=headers, params={"search": "juan_dela"}).json()["total"] == 0


def test_delete_evaluation(client, interviewed, supervisor):
    headers = auth(supervisor["token"])
    evaluation_id = client.post("/api/evaluations", headers=headers,
                                json=rubric(interviewed["user_id"])).json()["id"]
    assert client.delete(f"/api/evaluations/{evaluation_id}", headers=headers).status_code == 200
    assert client.get(f"/api/evaluations/{evaluation_id}", headers=headers).status_code == 404


def test_evaluations_require_permission(client, interviewed):
    response = client.post("/api/evaluations", headers=auth(interviewed["token"]), json=rubric(interviewed["user_id"]))
    assert response.status_code == 403


# ============================================================
# PANELISTS
# ============================================================

def test_panelist_crud(client, oas_staff, panelist, make_staff):
    headers = auth(oas_staff["token"])
    created = client.post("/api/panelists", headers=headers, json={"evaluator_user": panelist["user_id"]})
    assert created.status_code == 201
    panelist_id = created.json()["id"]
    assert created.json()["evaluator_name"] == "Paula Panelist"

    listed = client.get("/api/panelists", headers=headers, params={"search": "paula"}).json()
    assert [p["id"] for p in listed["data"]] == [panelist_id]

    replacement = make_staff("panelist", "Rita Replacement")
    updated = client.patch(f"/api/panelists/{panelist_id}", headers=headers,
                           json={"evaluator_user": replacement["user_id"]})
    assert updated.json()["evaluator_name"] == "Rita Replacement"

    assert client.delete(f"/api/panelists/{panelist_id}", headers=headers).status_code == 200
    assert client.get(f"/api/panelists/{panelist_id}", headers=headers).status_code == 404


def test_panelist_unknown_user(client, oas_staff):
    response = client.post("/api/panelists", headers=auth(oas_staff["token"]), json={"evaluator_user": 99999})
    assert response.status_code == 404


# ============================================================
# APPROVAL FORMS
# ============================================================

def test_department_head_endorses_application(client, submitted, make_staff, oas_staff):
    head = make_staff("department_head", "Dina Head")
    payload = {
        "application_id": submitted["application_id"],
        "to": "Office of Admissions and Scholarships",
        "designation": "Department Head",
        "department": "College of Computer Studies"
    }
    response = client.post("/api/approval-forms", headers=auth(head["token"]), json=payload)
    assert response.status_code == 201
    assert response.json()["department_office_head"] == head["user_id"]

    fetched = client.get(f"/api/approval-forms/application/{submitted['application_id']}",
                         headers=auth(oas_staff["token"]))
    assert fetched.status_code == 200
    assert fetched.json()["department"] == "College of Computer Studies"


def test_approval_form_missing(client, submitted, oas_staff):
    response = client.get(f"/api/approval-forms/application/{submitted['application_id']}",
                          headers=auth(oas_staff["token"]))
    assert response.status_code == 404

    response = client.post("/api/approval-forms", headers=auth(oas_staff["token"]), json={
        "application_id": submitted["application_id"], "to": "OAS", "designation": "Head", "department": "CCS"
    })
    assert response.status_code == 403

#!/usr/bin/env python3
"""
Document Upload Tests

Slots, limits, file validation, replacement, verification and download.
Run: pytest scripts/test_documents.py
"""
import io
import os

from PyPDF2 import PdfWriter

from conftest import auth, settings

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def png(name: str = "photo.png", content: bytes = PNG):
    return (name, content, "image/png")


def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def upload(client, token, application_id, files):
    return client.put(f"/api/documents/{application_id}", headers=auth(token), files=files)


def stored(name: str) -> str:
    return os.path.join(settings.upload_dir, name)


# ============================================================
# UPLOAD
# ============================================================

def test_upload_image_and_pdf(client, submitted):
    response = upload(client, submitted["token"], submitted["application_id"], [
        ("student_picture", png()),
        ("grade_report", ("grades.pdf", blank_pdf(), "application/pdf")),
    ])
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["application_id"] == submitted["application_id"]
    assert body["student_picture"][0]["original_name"] == "photo.png"
    assert body["grade_report"][0]["size_bytes"] > 0
    assert body["verification"]["student_picture"]["status"] == "uploaded"
    assert body["nbi_clearance"] == []
    assert body["all_verified"] is False
    assert os.path.exists(stored(body["grade_report"][0]["file_path"]))


def test_upload_notifies_and_logs(client, submitted):
    upload(client, submitted["token"], submitted["application_id"], [("student_picture", png())])
    latest = client.get("/api/notifications", headers=auth(submitted["token"])).json()["notifications"][0]
    assert latest["type"] == "document_uploaded"

    activity = client.get("/api/activity/me", headers=auth(submitted["token"])).json()
    assert activity[0]["activity_type"] == "document_uploaded"
    assert activity[0]["metadata"]["slots"] == ["student_picture"]


def test_unknown_slot_rejected(client, submitted):
    response = upload(client, submitted["token"], submitted["application_id"], [("passport", png())])
    assert response.status_code == 400
    assert "Unknown document slot" in response.json()["detail"]


def test_no_files_rejected(client, submitted):
    response = client.put(f"/api/documents/{submitted['application_id']}",
                          headers=auth(submitted["token"]), data={})
    assert response.status_code == 400


def test_slot_limits(client, submitted):
    two_pictures = [("student_picture", png("a.png")), ("student_picture", png("b.png"))]
    response = upload(client, submitted["token"], submitted["application_id"], two_pictures)
    assert response.status_code == 400
    assert "maximum 1" in response.json()["detail"]

    ten_certificates = [("certificates", png(f"c{i}.png")) for i in range(10)]
    assert upload(client, submitted["token"], submitted["application_id"], ten_certificates).status_code == 200

    six_reports = [("grade_report", png(f"g{i}.png")) for i in range(6)]
    assert upload(client, submitted["token"], submitted["application_id"], six_reports).status_code == 400


def test_bad_extension_rejected(client, submitted):
    response = upload(client, submitted["token"], submitted["application_id"],
                      [("grade_report", ("grades.docx", b"binary", "application/octet-stream"))])
    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_corrupt_pdf_rejected(client, submitted):
    response = upload(client, submitted["token"], submitted["application_id"],
                      [("grade_report", ("grades.pdf", b"this is not a pdf at all", "application/pdf"))])
    assert response.status_code == 400


def test_oversize_file_rejected(client, submitted):
    big = PNG + b"\x00" * (settings.max_upload_size_mb * 1024 * 1024)
    response = upload(client, submitted["token"], submitted["application_id"], [("student_picture", png(content=big))])
    assert response.status_code == 413


def test_failed_upload_keeps_no_files(client, submitted):
    before = set(os.listdir(settings.upload_dir)) if os.path.isdir(settings.upload_dir) else set()
    response = upload(client, submitted["token"], submitted["application_id"], [
        ("nbi_clearance", png("ok.png")),
        ("grade_report", ("bad.pdf", b"broken", "application/pdf")),
    ])
    assert response.status_code == 400
    assert set(os.listdir(settings.upload_dir)) == before


def test_reupload_replaces_slot_and_keeps_others(client, submitted):
    token, application_id = submitted["token"], submitted["application_id"]
    first = upload(client, token, application_id, [
        ("student_picture", png()),
        ("grade_report", png("old.png")),
    ]).json()
    old_path = first["grade_report"][0]["file_path"]

    second = upload(client, token, application_id, [("grade_report", png("new.png"))]).json()
    assert [f["original_name"] for f in second["grade_report"]] == ["new.png"]
    assert second["student_picture"][0]["file_path"] == first["student_picture"][0]["file_path"]
    assert not os.path.exists(stored(old_path))


def test_only_owner_uploads(client, submitted, make_applicant, oas_staff):
    stranger = make_applicant()
    assert upload(client, stranger["token"], submitted["application_id"], [("student_picture", png())]).status_code == 403
    assert upload(client, oas_staff["token"], submitted["application_id"], [("student_picture", png())]).status_code == 403


# ============================================================
# READ / DELETE
# ============================================================

def test_get_documents_access(client, submitted, make_applicant, oas_staff):
    path = f"/api/documents/{submitted['application_id']}"
    assert client.get(path, headers=auth(submitted["token"])).status_code == 404

    upload(client, submitted["token"], submitted["application_id"], [("student_picture", png())])
    assert client.get(path, headers=auth(submitted["token"])).status_code == 200
    assert client.get(path, headers=auth(oas_staff["token"])).status_code == 200

    stranger = make_applicant()
    assert client.get(path, headers=auth(stranger["token"])).status_code == 403


def test_delete_documents_removes_files(client, submitted, oas_staff):
    body = upload(client, submitted["token"], submitted["application_id"], [("student_picture", png())]).json()
    file_path = stored(body["student_picture"][0]["file_path"])

    response = client.delete(f"/api/documents/{submitted['application_id']}", headers=auth(oas_staff["token"]))
    assert response.status_code == 200
    assert not os.path.exists(file_path)
    assert client.get(f"/api/documents/{submitted['application_id']}",
                      headers=auth(oas_staff["token"])).status_code == 404


# ============================================================
# VERIFICATION
# ============================================================

def test_verify_slot_sets_all_verified(client, submitted, oas_staff):
    application_id = submitted["application_id"]
    upload(client, submitted["token"], application_id, [("student_picture", png())])

    response = client.patch(f"/api/documents/{application_id}/verify", headers=auth(oas_staff["token"]),
                            json={"slot": "student_picture", "status": "verified", "remarks": "Clear photo"})
    assert response.status_code == 200
    body = response.json()
    assert body["verification"]["student_picture"]["status"] == "verified"
    assert body["verification"]["student_picture"]["verified_by"] == oas_staff["user_id"]
    assert body["all_verified"] is True

    again = upload(client, submitted["token"], application_id, [("grade_report", png())]).json()
    assert again["all_verified"] is False


def test_reupload_resets_verification(client, submitted, oas_staff):
    application_id = submitted["application_id"]
    upload(client, submitted["token"], application_id, [("student_picture", png())])
    client.patch(f"/api/documents/{application_id}/verify", headers=auth(oas_staff["token"]),
                 json={"slot": "student_picture", "status": "rejected"})

    body = upload(client, submitted["token"], application_id, [("student_picture", png("retake.png"))]).json()
    assert body["verification"]["student_picture"]["status"] == "uploaded"


def test_verify_rejection_notifies(client, submitted, oas_staff):
    application_id = submitted["application_id"]
    upload(client, submitted["token"], application_id, [("nbi_clearance", png())])
    client.patch(f"/api/documents/{application_id}/verify", headers=auth(oas_staff["token"]),
                 json={"slot": "nbi_clearance", "status": "rejected"})

    latest = client.get("/api/notifications", headers=auth(submitted["token"])).json()["notifications"][0]
    assert latest["type"] == "document_status"
    assert latest["priority"] == "high"
    assert "nbi clearance" in latest["message"]


def test_verify_empty_slot_and_permission(client, submitted, oas_staff):
    application_id = submitted["application_id"]
    upload(client, submitted["token"], application_id, [("student_picture", png())])

    empty = client.patch(f"/api/documents/{application_id}/verify", headers=auth(oas_staff["token"]),
                         json={"slot": "grade_report", "status": "verified"})
    assert empty.status_code == 400

    forbidden = client.patch(f"/api/documents/{application_id}/verify", headers=auth(submitted["token"]),
                             json={"slot": "student_picture", "status": "verified"})
    assert forbidden.status_code == 403


# ============================================================
# DOWNLOAD
# ============================================================

def test_download_file(client, submitted, make_applicant, oas_staff):
    body = upload(client, submitted["token"], submitted["application_id"], [("student_picture", png())]).json()
    url = f"/api/documents/files/{body['student_picture'][0]['file_path']}"

    owner = client.get(url, headers=auth(submitted["token"]))
    assert owner.status_code == 200
    assert owner.content == PNG
    assert client.get(url, headers=auth(oas_staff["token"])).status_code == 200

    stranger = make_applicant()
    assert client.get(url, headers=auth(stranger["token"])).status_code == 403
    assert client.get(url).status_code in (401, 403)


def test_download_rejects_unsafe_and_unknown_names(client, applicant):
    assert client.get("/api/documents/files/.hidden.png", headers=auth(applicant["token"])).status_code == 400
    assert client.get("/api/documents/files/bad%20name.png", headers=auth(applicant["token"])).status_code == 400
    assert client.get("/api/documents/files/missing.png", headers=auth(applicant["token"])).status_code == 404

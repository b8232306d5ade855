import csv
import io
import sqlite3

import pytest
from werkzeug.datastructures import FileStorage

from dental_clinic.adapters.sqlite.patients_repo import AttachmentRepository
from dental_clinic.services.patient_service import PatientService


def _create(client, **data):
    data.setdefault("name", "Mona Hassan")
    return client.post("/patients/", json=data)


def test_create_and_fetch_patient(admin_client):
    response = _create(admin_client, phone="0100 123 4567", email="mona@example.com", dob="1990-05-01")
    assert response.status_code == 201
    patient_id = response.get_json()["patient"]["id"]

    detail = admin_client.get(f"/patients/{patient_id}").get_json()
    assert detail["patient"]["name"] == "Mona Hassan"
    assert len(detail["patient"]["dental_chart"]) == 32
    assert detail["patient"]["ledger"]["outstanding_balance"] == 0
    assert detail["chart_summary"]["counts"]["HEALTHY"] == 32


def test_patient_validation(admin_client):
    assert _create(admin_client, name="  ").status_code == 400
    assert _create(admin_client, phone="12ab").status_code == 400
    assert _create(admin_client, email="not-an-email").status_code == 400
    assert _create(admin_client, dob="31/12/1990").status_code == 400


def test_missing_patient_is_404(admin_client):
    assert admin_client.get("/patients/999").status_code == 404


def test_search_lists_balances(seeded, admin_client):
    _create(admin_client, name="Someone Else")
    rows = admin_client.get("/patients/list?q=karim").get_json()["patients"]
    assert [r["name"] for r in rows] == ["Karim Fathy"]
    assert rows[0]["outstanding_balance"] == 1000

    page = admin_client.get("/patients/?q=karim")
    assert page.status_code == 200
    assert b"Karim Fathy" in page.data


def test_chart_updates(admin_client):
    patient_id = _create(admin_client).get_json()["patient"]["id"]

    response = admin_client.post(f"/patients/{patient_id}/chart/tooth",
                                 json={"tooth_id": "UL6", "status": "CAVITY", "notes": "distal"})
    assert response.get_json()["chart"]["UL6"] == {"status": "CAVITY", "notes": "distal"}

    response = admin_client.post(f"/patients/{patient_id}/chart/bulk",
                                 data={"tooth_ids": "LL1,LL2", "status": "MISSING"})
    chart = response.get_json()["chart"]
    assert chart["LL1"]["status"] == "MISSING"
    assert chart["LL2"]["status"] == "MISSING"
    assert chart["UL6"]["status"] == "CAVITY"

    assert admin_client.post(f"/patients/{patient_id}/chart/tooth",
                             json={"tooth_id": "ZZ1", "status": "CAVITY"}).status_code == 400
    assert admin_client.post(f"/patients/{patient_id}/chart/bulk",
                             json={"tooth_ids": [], "status": "CAVITY"}).status_code == 400


def test_attachments(admin_client):
    patient_id = _create(admin_client).get_json()["patient"]["id"]

    response = admin_client.post(f"/patients/{patient_id}/attachments", data={
        "file": (io.BytesIO(b"\x89PNG xray"), "xray.png", "image/png"),
        "description": "Panoramic",
    }, content_type="multipart/form-data")
    assert response.status_code == 201
    attachment = response.get_json()["attachment"]
    assert attachment["original_filename"] == "xray.png"
    assert attachment["file_size"] == 9
    assert admin_client.get(attachment["file_url"]).data == b"\x89PNG xray"

    rejected = admin_client.post(f"/patients/{patient_id}/attachments", data={
        "file": (io.BytesIO(b"hello"), "notes.txt", "text/plain"),
    }, content_type="multipart/form-data")
    assert rejected.status_code == 400

    url = f"/patients/{patient_id}/attachments/{attachment['id']}/delete"
    assert admin_client.post(url, json={"confirm": True}).status_code == 200
    assert admin_client.get(attachment["file_url"]).status_code == 404
    assert admin_client.get(f"/patients/{patient_id}/attachments").get_json()["attachments"] == []


def test_deleting_a_patient(admin_client, desk_client):
    patient_id = _create(admin_client).get_json()["patient"]["id"]

    assert desk_client.post(f"/patients/{patient_id}/delete", json={"confirm": True}).status_code == 403
    response = admin_client.post(f"/patients/{patient_id}/delete")
    assert response.status_code == 400
    assert response.get_json()["confirm_required"] is True
    assert admin_client.post(f"/patients/{patient_id}/delete?confirm=1").status_code == 200
    assert admin_client.get(f"/patients/{patient_id}").status_code == 404


def test_printable_reports(seeded, admin_client):
    invoice = admin_client.get(f"/reports/patient/{seeded.patient_id}/invoice")
    assert invoice.status_code == 200
    assert b"Karim Fathy" in invoice.data
    assert b"Bright Smile" in invoice.data

    report = admin_client.get(f"/reports/patient/{seeded.patient_id}/full")
    assert report.status_code == 200
    assert b"UR6" in report.data

    assert admin_client.get("/reports/patient/999/invoice").status_code == 404


def test_financial_summary_endpoint(seeded, admin_client, desk_client):
    admin_client.post(f"/billing/patient/{seeded.patient_id}/payments",
                      json={"amount": 400, "date": "2024-03-05", "treatment_record_id": seeded.record_id})

    summary = admin_client.get("/reports/financial.json").get_json()["summary"]
    assert summary["total_revenue"] == 400
    assert summary["doctor_revenue"] == 240
    assert summary["accounts_receivable"] == 600

    assert admin_client.get("/reports/financial?start_date=2024-01-01&end_date=2024-12-31").status_code == 200
    assert admin_client.get("/reports/financial.json?start_date=2024-05-01&end_date=2024-01-01").status_code == 400
    assert desk_client.get("/reports/financial.json").status_code == 403


def test_bulk_edit_changes_only_the_selected_teeth(admin_client):
    patient_id = _create(admin_client).get_json()["patient"]["id"]
    selected = ["UR1", "UL1", "LR8"]

    response = admin_client.post(f"/patients/{patient_id}/chart/bulk",
                                 json={"tooth_ids": selected, "status": "FILLING", "notes": "x"})
    chart = response.get_json()["chart"]

    assert len(chart) == 32
    for tooth_id, tooth in chart.items():
        expected = {"status": "FILLING", "notes": "x"} if tooth_id in selected else {"status": "HEALTHY", "notes": ""}
        assert tooth == expected


def test_failed_attachment_insert_removes_the_file(ctx, tmp_path):
    class BrokenAttachments(AttachmentRepository):
        def create(self, attachment):
            raise sqlite3.OperationalError("disk I/O error")

    patient = PatientService().create({"name": "Mona Hassan"})
    upload = FileStorage(io.BytesIO(b"\x89PNG xray"), filename="xray.png", content_type="image/png")
    with pytest.raises(sqlite3.OperationalError):
        PatientService(attachment_repo=BrokenAttachments()).add_attachment(patient.id, upload)

    folder = tmp_path / "uploads" / "patients" / str(patient.id)
    assert not folder.exists() or list(folder.iterdir()) == []


def test_csv_exports(seeded, admin_client, desk_client):
    admin_client.post(f"/billing/patient/{seeded.patient_id}/payments",
                      json={"amount": 400, "date": "2024-03-05", "treatment_record_id": seeded.record_id})

    response = admin_client.get("/reports/export/payments.csv?start_date=2024-03-01&end_date=2024-03-31")
    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("text/csv")
    assert 'filename="payments.csv"' in response.headers["Content-Disposition"]
    rows = list(csv.reader(io.StringIO(response.get_data(as_text=True).lstrip("\ufeff"))))
    assert rows[0][:5] == ["Payment", "Date", "Patient", "Method", "Amount"]
    assert rows[1][1:5] == ["2024-03-05", "Karim Fathy", "Cash", "400.0"]

    empty = admin_client.get("/reports/export/payments.csv?start_date=2024-04-01&end_date=2024-04-30")
    assert len(list(csv.reader(io.StringIO(empty.get_data(as_text=True))))) == 1

    financial = admin_client.get("/reports/export/financial.csv").get_data(as_text=True)
    figures = dict(csv.reader(io.StringIO(financial.lstrip("\ufeff"))))
    assert figures["Total revenue"] == "400.0"
    assert figures["Accounts receivable"] == "600.0"

    assert admin_client.get("/reports/export/expenses.csv").status_code == 200
    assert desk_client.get("/reports/export/payments.csv").status_code == 403
    exports = admin_client.get("/reports/activity?action_type=export_csv").get_json()["logs"]
    assert len(exports) == 4

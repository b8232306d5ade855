import pytest

from dental_clinic.domain.payments import PaymentMethod
from dental_clinic.services.activity_logger import ActionType, get_activity_logs


def _discount(client, patient_id, amount, passcode="123", notes="Loyal patient"):
    return client.post(f"/billing/patient/{patient_id}/discount",
                       json={"amount": amount, "passcode": passcode, "notes": notes})


def test_approved_discount_reduces_balance(seeded, admin_client):
    response = _discount(admin_client, seeded.patient_id, 150)
    assert response.status_code == 201
    assert response.get_json()["payment"]["method"] == PaymentMethod.DISCOUNT.value

    ledger = admin_client.get(f"/patients/{seeded.patient_id}/ledger").get_json()
    assert ledger["outstanding_balance"] == 850


def test_role_is_checked_before_the_code(seeded, desk_client):
    response = _discount(desk_client, seeded.patient_id, 150)
    assert response.status_code == 403
    assert "not allowed" in response.get_json()["error"]


@pytest.mark.parametrize("amount", [0, -50, "nan"])
def test_discount_amount_must_be_positive(seeded, admin_client, amount):
    response = _discount(admin_client, seeded.patient_id, amount)
    assert response.status_code == 400
    assert "greater than zero" in response.get_json()["error"]
    ledger = admin_client.get(f"/patients/{seeded.patient_id}/ledger").get_json()
    assert ledger["outstanding_balance"] == 1000


def test_discount_cannot_exceed_balance(seeded, admin_client):
    response = _discount(admin_client, seeded.patient_id, 1200)
    assert response.status_code == 400


def test_discount_needs_an_outstanding_balance(admin_client):
    patient = admin_client.post("/patients/", json={"name": "No Debt"}).get_json()["patient"]
    response = _discount(admin_client, patient["id"], 10)
    assert response.status_code == 400
    assert "no outstanding balance" in response.get_json()["error"]


def test_wrong_code_is_rejected_and_audited(seeded, admin_client, app):
    response = _discount(admin_client, seeded.patient_id, 150, passcode="999")
    assert response.status_code == 403
    assert "incorrect" in response.get_json()["error"]

    with app.app_context():
        rejected = get_activity_logs(action_type=ActionType.DISCOUNT_REJECTED)
    assert len(rejected) == 1
    assert rejected[0]["patient_id"] == seeded.patient_id
    assert rejected[0]["username"] == "admin"


def test_discounts_cannot_be_edited(seeded, admin_client):
    payment_id = _discount(admin_client, seeded.patient_id, 100).get_json()["payment"]["id"]
    response = admin_client.post(f"/billing/payments/{payment_id}/edit",
                                 json={"amount": 50, "date": "2024-03-05"})
    assert response.status_code == 400

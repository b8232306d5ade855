import pytest


def _pay(client, patient_id, **data):
    data.setdefault("date", "2024-03-05")
    return client.post(f"/billing/patient/{patient_id}/payments", json=data)


def test_payment_reduces_balance(seeded, admin_client):
    response = _pay(admin_client, seeded.patient_id, amount=300, method="Cash")
    assert response.status_code == 201

    ledger = admin_client.get(f"/patients/{seeded.patient_id}/ledger").get_json()
    assert ledger["total_charges"] == 1000
    assert ledger["total_paid"] == 300
    assert ledger["outstanding_balance"] == 700


def test_duplicate_payment_needs_confirmation(seeded, admin_client):
    assert _pay(admin_client, seeded.patient_id, amount=200).status_code == 201

    response = _pay(admin_client, seeded.patient_id, amount=200)
    assert response.status_code == 409
    assert response.get_json()["duplicate"] is True

    response = _pay(admin_client, seeded.patient_id, amount=200, confirm_duplicate=True)
    assert response.status_code == 201


def test_payment_cannot_exceed_balance(seeded, admin_client):
    response = _pay(admin_client, seeded.patient_id, amount=1000.01)
    assert response.status_code == 400
    assert "outstanding balance" in response.get_json()["error"]


@pytest.mark.parametrize("amount", ["nan", "inf", "-inf"])
def test_non_finite_amount_is_rejected(seeded, admin_client, amount):
    response = _pay(admin_client, seeded.patient_id, amount=amount)
    assert response.status_code == 400
    assert "greater than zero" in response.get_json()["error"]
    ledger = admin_client.get(f"/patients/{seeded.patient_id}/ledger").get_json()
    assert ledger["total_paid"] == 0


def test_future_dated_payment_is_rejected(seeded, admin_client):
    response = _pay(admin_client, seeded.patient_id, amount=100, date="2999-01-01")
    assert response.status_code == 400


def test_discount_method_is_not_accepted_as_payment(seeded, admin_client):
    response = _pay(admin_client, seeded.patient_id, amount=100, method="Discount")
    assert response.status_code == 400


def test_payment_linked_to_treatment_is_split(seeded, admin_client):
    response = _pay(admin_client, seeded.patient_id, amount=500, treatment_record_id=seeded.record_id)
    payment = response.get_json()["payment"]
    assert payment["doctor_share"] == 300
    assert payment["clinic_share"] == 200


def test_deleting_a_payment(seeded, admin_client, desk_client):
    payment_id = _pay(admin_client, seeded.patient_id, amount=100).get_json()["payment"]["id"]

    assert desk_client.post(f"/billing/payments/{payment_id}/delete", json={"confirm": True}).status_code == 403
    assert admin_client.post(f"/billing/payments/{payment_id}/delete").status_code == 400
    assert admin_client.post(f"/billing/payments/{payment_id}/delete", json={"confirm": True}).status_code == 200
    assert admin_client.post(f"/billing/payments/{payment_id}/delete", json={"confirm": True}).status_code == 404


def test_editing_a_payment_checks_balance_without_itself(seeded, admin_client):
    payment_id = _pay(admin_client, seeded.patient_id, amount=400).get_json()["payment"]["id"]

    response = admin_client.post(f"/billing/payments/{payment_id}/edit",
                                 json={"amount": 1000, "date": "2024-03-05"})
    assert response.status_code == 200
    response = admin_client.post(f"/billing/payments/{payment_id}/edit",
                                 json={"amount": 1001, "date": "2024-03-05"})
    assert response.status_code == 400


def test_doctor_payments(seeded, admin_client):
    url = f"/billing/dentists/{seeded.dentist_id}/payments"

    assert admin_client.post(url, json={"amount": 700, "date": "2024-03-10"}).status_code == 400
    assert admin_client.post(url, json={"amount": 100, "date": "2024-03-10"}).status_code == 201
    assert admin_client.post(url, json={"amount": 100, "date": "2024-03-10"}).status_code == 409

    balance = admin_client.get(url).get_json()["balance"]
    assert balance == {"earned": 600, "paid": 100, "balance": 500}


def test_receptionist_cannot_pay_doctors(seeded, desk_client):
    response = desk_client.post(f"/billing/dentists/{seeded.dentist_id}/payments",
                                json={"amount": 100, "date": "2024-03-10"})
    assert response.status_code == 403

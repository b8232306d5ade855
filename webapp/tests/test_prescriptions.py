def _prescribe(client, patient_id, dentist_id, **data):
    data.setdefault("prescription_date", "2024-03-01")
    data.setdefault("items", [{"medication_name": "Amoxicillin 500mg", "quantity": 2,
                               "dosage": "1 capsule every 8 hours"}])
    return client.post(f"/prescriptions/patient/{patient_id}", json=dict(data, dentist_id=dentist_id))


def test_create_and_print(seeded, admin_client):
    response = _prescribe(admin_client, seeded.patient_id, seeded.dentist_id, notes="After meals")
    assert response.status_code == 201
    prescription = response.get_json()["prescription"]
    assert prescription["created_by"] == "admin"
    assert prescription["items"][0]["quantity"] == 2

    detail = admin_client.get(f"/prescriptions/{prescription['id']}").get_json()["prescription"]
    assert detail["items"][0]["medication_name"] == "Amoxicillin 500mg"

    printed = admin_client.get(f"/reports/prescription/{prescription['id']}")
    assert printed.status_code == 200
    assert b"Amoxicillin 500mg" in printed.data


def test_item_validation(seeded, admin_client):
    assert _prescribe(admin_client, seeded.patient_id, seeded.dentist_id, items=[]).status_code == 400
    bad_quantity = [{"medication_name": "Ibuprofen", "quantity": 0}]
    assert _prescribe(admin_client, seeded.patient_id, seeded.dentist_id, items=bad_quantity).status_code == 400
    no_name = [{"medication_name": " ", "quantity": 1}]
    assert _prescribe(admin_client, seeded.patient_id, seeded.dentist_id, items=no_name).status_code == 400
    assert _prescribe(admin_client, seeded.patient_id, None).status_code == 400
    assert _prescribe(admin_client, 999, seeded.dentist_id).status_code == 404


def test_search(seeded, admin_client):
    _prescribe(admin_client, seeded.patient_id, seeded.dentist_id)
    _prescribe(admin_client, seeded.patient_id, seeded.dentist_id,
               items=[{"medication_name": "Chlorhexidine mouthwash"}])

    by_drug = admin_client.get("/prescriptions/?q=chlorhex").get_json()["prescriptions"]
    assert len(by_drug) == 1
    assert by_drug[0]["items"][0]["quantity"] == 1

    by_patient = admin_client.get("/prescriptions/?q=karim").get_json()["prescriptions"]
    assert len(by_patient) == 2
    assert admin_client.get("/prescriptions/?q=nothing-matches").get_json()["prescriptions"] == []


def test_edit_and_delete(seeded, admin_client, desk_client):
    created = _prescribe(admin_client, seeded.patient_id, seeded.dentist_id)
    prescription_id = created.get_json()["prescription"]["id"]

    assert _prescribe(desk_client, seeded.patient_id, seeded.dentist_id).status_code == 403

    response = admin_client.post(f"/prescriptions/{prescription_id}/edit", json={
        "dentist_id": seeded.dentist_id,
        "prescription_date": "2024-03-02",
        "items": [{"medication_name": "Paracetamol", "quantity": 1}],
    })
    edited = response.get_json()["prescription"]
    assert [i["medication_name"] for i in edited["items"]] == ["Paracetamol"]
    assert edited["created_by"] == "admin"

    assert admin_client.post(f"/prescriptions/{prescription_id}/delete").status_code == 400
    assert admin_client.post(f"/prescriptions/{prescription_id}/delete", json={"confirm": True}).status_code == 200
    assert admin_client.get(f"/prescriptions/{prescription_id}").status_code == 404

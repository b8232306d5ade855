from types import SimpleNamespace

import pytest

from dental_clinic.app import create_app
from dental_clinic.services.auth_service import AuthService
from dental_clinic.services.dentist_service import DentistService
from dental_clinic.services.patient_service import PatientService
from dental_clinic.services.supplier_service import SupplierService
from dental_clinic.services.treatment_service import TreatmentService


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "DATABASE_PATH": str(tmp_path / "clinic.db"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "DISCOUNT_APPROVAL_CODE": "123",
        "CLINIC_NAME": "Bright Smile",
        "CLINIC_ADDRESS": "12 Nile St",
        "CLINIC_PHONE": "0100 000 0000",
        "PHONE_COUNTRY_CODE": "20",
    })
    with app.app_context():
        auth = AuthService()
        auth.register_user("admin", "admin-pass", "admin")
        auth.register_user("doc", "doc-pass", "doctor")
        auth.register_user("desk", "desk-pass", "receptionist")
    return app


@pytest.fixture
def ctx(app):
    """Request context for calling services directly."""
    with app.test_request_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username, password):
    return client.post("/auth/login", data={"username": username, "password": password})


@pytest.fixture
def admin_client(client):
    login(client, "admin", "admin-pass")
    return client


@pytest.fixture
def desk_client(app):
    client = app.test_client()
    login(client, "desk", "desk-pass")
    return client


@pytest.fixture
def clinic(ctx):
    """A dentist, a filling priced 1000 (60/40), a 50-per-unit material, a patient and a lab."""
    dentist = DentistService().save({"name": "Dr. Sara", "color": "#112233"})
    suppliers = SupplierService()
    supplier = suppliers.save_supplier({"name": "Cairo Supplies"})
    lab = suppliers.save_supplier({"name": "Smile Lab", "type": "Dental Lab"})
    item = suppliers.save_item({"name": "Composite", "unit_cost": 50, "current_stock": 10,
                                "min_stock_level": 2, "supplier_id": supplier.id})
    filling = TreatmentService().save_definition({
        "name": "Composite filling", "base_price": 1000,
        "doctor_percentage": 0.6, "clinic_percentage": 0.4,
    })
    patient = PatientService().create({"name": "Mona Hassan", "phone": "0100 123 4567"})
    return SimpleNamespace(dentist=dentist, supplier=supplier, lab=lab, item=item,
                           filling=filling, patient=patient)


def seed_via_api(client):
    """Create a dentist, a 1000 treatment and a patient with it recorded; return their ids."""
    dentist = client.post("/billing/dentists", json={"name": "Dr. Omar"}).get_json()["dentist"]
    definition = client.post("/treatments/definitions", json={
        "name": "Crown", "base_price": 1000, "doctor_percentage": 0.6, "clinic_percentage": 0.4,
    }).get_json()["definition"]
    patient = client.post("/patients/", json={"name": "Karim Fathy", "phone": "0112 345 6789"}).get_json()["patient"]
    record = client.post(f"/treatments/patient/{patient['id']}", json={
        "dentist_id": dentist["id"],
        "treatment_definition_id": definition["id"],
        "treatment_date": "2024-03-01",
        "affected_teeth": ["UR6"],
    }).get_json()["record"]
    return SimpleNamespace(dentist_id=dentist["id"], definition_id=definition["id"],
                           patient_id=patient["id"], record_id=record["id"])


@pytest.fixture
def seeded(admin_client):
    return seed_via_api(admin_client)

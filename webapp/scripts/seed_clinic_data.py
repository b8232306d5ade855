import sys
from pathlib import Path

# Add webapp to path
current_dir = Path(__file__).parent.parent
sys.path.append(str(current_dir))

from dental_clinic.app import create_app
from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.services.auth_service import AuthService
from dental_clinic.services.dentist_service import DentistService
from dental_clinic.services.patient_service import PatientService
from dental_clinic.services.supplier_service import SupplierService
from dental_clinic.services.treatment_service import TreatmentService


def seed():
    app = create_app()
    with app.app_context():
        if get_db().execute("SELECT COUNT(*) FROM dentists").fetchone()[0]:
            print("Database already has data; nothing to do.")
            return

        print("Creating users...")
        auth = AuthService()
        auth.register_user("admin", "admin123", "admin", "Clinic Admin")
        auth.register_user("reception1", "rec123", "receptionist", "Front Desk")

        print("Adding dentists...")
        dentists = DentistService()
        dentists.save({"name": "Dr. Sara Adel", "specialty": "General", "color": "#1f77b4"})
        dentists.save({"name": "Dr. Omar Nabil", "specialty": "Endodontics", "color": "#2ca02c"})

        print("Adding suppliers and inventory...")
        suppliers = SupplierService()
        supplier = suppliers.save_supplier({"name": "Cairo Dental Supplies", "phone": "0100 555 0101"})
        suppliers.save_supplier({"name": "Smile Lab", "type": "Dental Lab", "phone": "0100 555 0202"})
        suppliers.save_item({"name": "Composite resin", "unit_cost": 50, "current_stock": 40,
                             "min_stock_level": 10, "supplier_id": supplier.id})
        suppliers.save_item({"name": "Anesthetic cartridge", "unit_cost": 15, "current_stock": 100,
                             "min_stock_level": 20, "supplier_id": supplier.id})

        print("Adding treatments...")
        treatments = TreatmentService()
        for name, price, doctor_pct, status in (
            ("Consultation", 200, 0.5, None),
            ("Composite filling", 1000, 0.6, "FILLING"),
            ("Root canal", 3000, 0.5, "ROOT_CANAL"),
            ("Zirconia crown", 5000, 0.4, "CROWN"),
            ("Extraction", 800, 0.6, "MISSING"),
        ):
            treatments.save_definition({
                "name": name,
                "base_price": price,
                "doctor_percentage": doctor_pct,
                "clinic_percentage": round(1 - doctor_pct, 2),
                "tooth_status": status,
            })

        print("Adding patients...")
        patients = PatientService()
        patients.create({"name": "Mona Hassan", "phone": "0101 234 5678", "gender": "F"})
        patients.create({"name": "Karim Fathy", "phone": "0112 345 6789", "gender": "M",
                         "allergies": "Penicillin"})

        print("Seeding completed successfully.")


if __name__ == "__main__":
    seed()

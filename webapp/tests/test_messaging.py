import pytest

from dental_clinic.common.messaging import (
    build_whatsapp_link, international_phone_number, render_message,
)


@pytest.mark.parametrize("phone, expected", [
    ("0100 123 4567", "201001234567"),
    ("(010) 0123-4567", "201001234567"),
    ("1001234567", "201001234567"),
])
def test_international_phone_number(phone, expected):
    assert international_phone_number(phone, "20") == expected


def test_missing_phone_is_an_error():
    with pytest.raises(ValueError):
        international_phone_number("", "20")


def test_render_message_keeps_unknown_placeholders():
    text = render_message("Hi {patientName}, see {doctor}", patientName="Mona")
    assert text == "Hi Mona, see {doctor}"


def test_whatsapp_link_is_url_encoded():
    url = build_whatsapp_link("0100 123 4567", "Hello {patientName} from {clinicName}",
                              patient_name="Mona", clinic_name="Bright Smile")
    assert url == "https://wa.me/201001234567?text=Hello%20Mona%20from%20Bright%20Smile"


def test_patient_whatsapp_endpoint(admin_client):
    patient = admin_client.post("/patients/", json={"name": "Mona", "phone": "0100 123 4567"}).get_json()["patient"]
    url = admin_client.get(f"/patients/{patient['id']}/whatsapp").get_json()["url"]
    assert url.startswith("https://wa.me/201001234567?text=")
    assert "Bright%20Smile" in url

import re
from urllib.parse import quote

WHATSAPP_BASE_URL = 'https://wa.me/'


def international_phone_number(phone: str, country_code: str) -> str:
    digits = re.sub(r'[^0-9]', '', phone or '')
    if digits.startswith('0'):
        digits = digits[1:]
    if not digits:
        raise ValueError('Patient has no phone number')
    return f"{country_code}{digits}"


def render_message(template: str, **values) -> str:
    """Replace ``{placeholder}`` tokens; unknown placeholders are left as-is."""
    message = template or ''
    for key, value in values.items():
        message = message.replace('{' + key + '}', value or '')
    return message


def build_whatsapp_link(phone, template, patient_name, clinic_name,
                        clinic_address='', clinic_phone='', country_code='20'):
    number = international_phone_number(phone, country_code)
    message = render_message(
        template,
        patientName=patient_name,
        clinicName=clinic_name,
        clinicAddress=clinic_address,
        clinicPhone=clinic_phone,
    )
    return f"{WHATSAPP_BASE_URL}{number}?text={quote(message)}"

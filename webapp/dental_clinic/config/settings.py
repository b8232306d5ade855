import os
import sys


def _env_list(name, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(',') if part.strip())


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-prod'

    # Determine project root and paths in both source and frozen (PyInstaller) modes.
    if getattr(sys, 'frozen', False):
        PROJECT_ROOT = os.path.dirname(sys.executable)
        BASE_DIR = PROJECT_ROOT
    else:
        # Regular source layout: dental_clinic/config -> dental_clinic -> webapp
        BASE_DIR = os.path.abspath(os.path.dirname(__file__))
        PROJECT_ROOT = os.path.dirname(os.path.dirname(BASE_DIR))

    DATABASE_PATH = os.environ.get('DATABASE_PATH') or os.path.join(PROJECT_ROOT, 'dental_clinic.db')

    # Patient attachments and supplier invoice scans
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(PROJECT_ROOT, 'uploads')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Clinic identity, used on printed documents and messaging links
    CLINIC_NAME = os.environ.get('CLINIC_NAME', 'Dental Clinic')
    CLINIC_ADDRESS = os.environ.get('CLINIC_ADDRESS', '')
    CLINIC_PHONE = os.environ.get('CLINIC_PHONE', '')
    CURRENCY = os.environ.get('CURRENCY', 'EGP')
    CLINIC_UTC_OFFSET_HOURS = float(os.environ.get('CLINIC_UTC_OFFSET_HOURS', '2'))

    PHONE_COUNTRY_CODE = os.environ.get('PHONE_COUNTRY_CODE', '20')
    WHATSAPP_MESSAGE_TEMPLATE = os.environ.get(
        'WHATSAPP_MESSAGE_TEMPLATE',
        'Hello {patientName}, this is a reminder from {clinicName}. '
        'Address: {clinicAddress}. Phone: {clinicPhone}.'
    )

    # Discount approval: who may grant one, and the shared approval code
    DISCOUNT_APPROVAL_CODE = os.environ.get('DISCOUNT_APPROVAL_CODE') or 'change-me'
    DISCOUNT_APPROVER_ROLES = _env_list('DISCOUNT_APPROVER_ROLES', ('admin', 'doctor'))

    # Fallback keyword table for treatments without an explicit chart status.
    # First match wins.
    TOOTH_STATUS_KEYWORDS = (
        ('filling', 'FILLING'),
        ('crown', 'CROWN'),
        ('implant', 'IMPLANT'),
        ('root canal', 'ROOT_CANAL'),
        ('endodontic', 'ROOT_CANAL'),
        ('extraction', 'MISSING'),
        ('removal', 'MISSING'),
        ('cavity', 'CAVITY'),
    )

    # Scheduler working hours
    WORK_START_HOUR = int(os.environ.get('WORK_START_HOUR', '9'))
    WORK_END_HOUR = int(os.environ.get('WORK_END_HOUR', '17'))

    LAB_CASE_TURNAROUND_DAYS = int(os.environ.get('LAB_CASE_TURNAROUND_DAYS', '7'))


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test'
    DATABASE_PATH = ':memory:'
    DISCOUNT_APPROVAL_CODE = '123'

from datetime import datetime, timedelta, timezone

from dental_clinic.common.utils import clinic_now


def _utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def test_clinic_now_uses_the_app_offset(app):
    app.config["CLINIC_UTC_OFFSET_HOURS"] = 10
    with app.app_context():
        drift = clinic_now() - _utc_now()
    assert abs(drift - timedelta(hours=10)) < timedelta(minutes=1)

    app.config["CLINIC_UTC_OFFSET_HOURS"] = -3.5
    with app.app_context():
        drift = clinic_now() - _utc_now()
    assert abs(drift - timedelta(hours=-3.5)) < timedelta(minutes=1)

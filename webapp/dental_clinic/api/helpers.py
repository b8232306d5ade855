"""Request parsing and error mapping shared by the JSON endpoints."""
import dataclasses
import functools
import logging
from datetime import date, datetime
from enum import Enum

from flask import jsonify, request

from dental_clinic.common.errors import DuplicatePaymentError, NotFoundError, StorageError

logger = logging.getLogger(__name__)


def payload() -> dict:
    """JSON body, or the submitted form as a plain dict."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def flag(data, name) -> bool:
    return str(data.get(name, '')).lower() in ('1', 'true', 'yes', 'on')


def confirmed(data=None) -> bool:
    data = data if data is not None else payload()
    return flag(data, 'confirm') or request.args.get('confirm') == '1'


def serialize(obj):
    """Dataclasses, enums and dates to JSON-friendly values."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: serialize(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [serialize(v) for v in obj]
    return obj


def json_errors(view):
    """Map service exceptions to JSON error responses.

    ValueError -> 400, PermissionError -> 403, NotFoundError -> 404,
    DuplicatePaymentError -> 409, anything else is logged and -> 500.
    """
    @functools.wraps(view)
    def wrapped_view(**kwargs):
        try:
            return view(**kwargs)
        except DuplicatePaymentError as e:
            return jsonify({'error': str(e), 'duplicate': True}), 409
        except NotFoundError as e:
            return jsonify({'error': str(e)}), 404
        except PermissionError as e:
            return jsonify({'error': str(e)}), 403
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        except StorageError as e:
            logger.error('Storage failure in %s: %s', view.__name__, e)
            return jsonify({'error': str(e)}), 500
        except Exception:
            logger.exception('Unexpected error in %s', view.__name__)
            return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return wrapped_view


def confirmation_required():
    return jsonify({'error': 'Please confirm this action', 'confirm_required': True}), 400

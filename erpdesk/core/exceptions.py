"""DRF exception handler that adds the `{error, message}` envelope the dashboard reads"""
import logging

from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    if isinstance(detail, dict):
        if 'detail' in detail:
            return _first_message(detail['detail'])
        for key, value in detail.items():
            message = _first_message(value)
            if message:
                return message if key == 'non_field_errors' else f"{key}: {message}"
        return None
    if isinstance(detail, (list, tuple)):
        for item in detail:
            message = _first_message(item)
            if message:
                return message
        return None
    return str(detail) if detail is not None else None


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if response.status_code >= 500:
        logger.error(f"API error {response.status_code} in {context.get('view')}: {exc}")

    data = response.data
    message = _first_message(data) or 'Request failed'
    if isinstance(data, dict):
        data.setdefault('error', True)
        data.setdefault('message', message)
    else:
        response.data = {'error': True, 'message': message, 'errors': data}
    return response


def error_response_body(errors):
    """Envelope serializer.errors the same way for views that return 400 directly"""
    body = dict(errors) if isinstance(errors, dict) else {'errors': errors}
    body.setdefault('error', True)
    body.setdefault('message', _first_message(errors) or 'Invalid data')
    return body

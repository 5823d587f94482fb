import json
import logging
from functools import wraps

from django.http import JsonResponse

from library.exceptions import ConsistencyError, LendingError, ValidationError

logger = logging.getLogger(__name__)


def request_data(request):
    """POST form data, or the JSON body when the client sent JSON."""
    if request.content_type == 'application/json':
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except ValueError:
            raise ValidationError('Request body is not valid JSON.')
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object.')
        return data
    if request.method == 'GET':
        return request.GET
    return request.POST


def success(message='', data=None, status=200):
    payload = {'success': True, 'message': message}
    if data is not None:
        payload['data'] = data
    return JsonResponse(payload, status=status)


def json_endpoint(methods=('GET',)):
    """
    Restrict a view to `methods` and turn lending failures into the
    {'success': False, ...} JSON shape with the error's status code.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if request.method not in methods:
                return JsonResponse({
                    'success': False,
                    'message': f'{" or ".join(methods)} request required.',
                    'code': 'method_not_allowed',
                }, status=405)
            try:
                return view_func(request, *args, **kwargs)
            except LendingError as e:
                return JsonResponse(e.as_dict(), status=e.status_code)
            except ConsistencyError as e:
                logger.error('Consistency error in %s: %s', view_func.__name__, e)
                return JsonResponse({
                    'success': False,
                    'message': 'An internal error occurred. No changes were saved.',
                    'code': e.code,
                }, status=e.status_code)
        return wrapper
    return decorator

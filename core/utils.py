from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import BusinessRuleViolation


def custom_exception_handler(exc, context):
    """Wrap DRF and domain errors in the {success, message, data, errors} envelope"""
    response = exception_handler(exc, context)

    if response is not None:
        custom_response = {
            'success': False,
            'message': 'An error occurred',
            'data': None,
            'errors': []
        }

        if isinstance(exc, BusinessRuleViolation):
            custom_response['message'] = exc.title
            custom_response['errors'] = [str(exc.detail)]
        elif isinstance(response.data, dict):
            if 'detail' in response.data:
                custom_response['message'] = str(response.data['detail'])
            else:
                custom_response['errors'] = response.data
        elif isinstance(response.data, list):
            custom_response['errors'] = response.data
        else:
            custom_response['message'] = str(response.data)

        response.data = custom_response

    return response


def api_response(success=True, message='', data=None, errors=None, status=200):
    """Consistent API response format"""
    response_data = {
        'success': success,
        'message': message,
        'data': data if data is not None else {},
        'errors': errors if errors is not None else []
    }
    return Response(response_data, status=status)

from rest_framework import status as drf_status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class DuplicateInvoiceCode(APIException):
    status_code = drf_status.HTTP_409_CONFLICT
    default_detail = 'Invoice code already exists.'
    default_code = 'duplicate_invoice_code'


class NotFoundOrForbidden(APIException):
    """Raised for missing rows and rows outside the caller's scope alike."""
    status_code = drf_status.HTTP_404_NOT_FOUND
    default_detail = 'Invoice not found or you do not have access to it.'
    default_code = 'not_found_or_forbidden'


class PaymentNotAllowed(APIException):
    status_code = drf_status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to update this payment step.'
    default_code = 'payment_not_allowed'


class AlreadyInState(APIException):
    status_code = drf_status.HTTP_409_CONFLICT
    default_detail = 'The invoice is already in the requested state.'
    default_code = 'already_in_state'


def envelope_exception_handler(exc, context):
    """Wraps DRF error responses as ``{"success": false, "error": ...}``."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and set(data) == {'detail'}:
        data = data['detail']
    response.data = {'success': False, 'error': data}
    return response

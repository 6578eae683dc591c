"""
Error taxonomy shared by every service.

Services raise these; DRF renders them as ``{"detail": ..., "code": ...}``.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationError(APIException):
    status_code = 400
    default_detail = 'Invalid request.'
    default_code = 'validation_error'


class AuthorizationError(APIException):
    status_code = 403
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'authorization_error'


class NotFoundError(APIException):
    status_code = 404
    default_detail = 'Not found.'
    default_code = 'not_found'


class ConflictError(APIException):
    status_code = 409
    default_detail = 'The resource was modified by another request.'
    default_code = 'conflict'


class NoOrganizationAssociated(APIException):
    status_code = 400
    default_detail = 'No organization associated with this user.'
    default_code = 'no_organization_associated'


def api_exception_handler(exc, context):
    """DRF exception handler that also maps model validation and integrity errors."""
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'error_dict') else '; '.join(exc.messages)
        exc = ValidationError(detail=detail)
    elif isinstance(exc, IntegrityError):
        logger.warning("Integrity error surfaced as conflict: %s", exc)
        exc = ConflictError()

    response = exception_handler(exc, context)
    if response is not None and isinstance(exc, APIException):
        if isinstance(response.data, dict) and 'detail' in response.data:
            codes = exc.get_codes()
            response.data['code'] = codes if isinstance(codes, str) else exc.default_code
    return response

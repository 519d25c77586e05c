"""
Error taxonomy for the caja ledgers and the unified API exception handler.

Services raise :class:`CajaError` subclasses; the handler below turns
them (and any DRF error) into the ``{'ok': False, 'error': {...}}`` body
used across the API.
"""
from rest_framework import exceptions as drf_exceptions
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response


class CajaError(Exception):
    """Base class for ledger errors that reach the API boundary."""
    code = 'caja_error'
    status_code = 400

    def __init__(self, message: str = '', **detail):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def as_dict(self) -> dict:
        payload = {'code': self.code, 'message': self.message}
        if self.detail:
            payload['detail'] = self.detail
        return payload


class ValidationError(CajaError):
    """Bad amount, unknown category or missing receipt reference."""
    code = 'validation_error'
    status_code = 400


class NotFoundError(CajaError):
    """Unknown patient account, debt or deposit id."""
    code = 'not_found'
    status_code = 404


class ConflictError(CajaError):
    """Cut requested without debt, duplicate pending cut, or audit-trail violation."""
    code = 'conflict'
    status_code = 409


class BlockedError(CajaError):
    """Charge attempted while a cash cut is pending."""
    code = 'blocked'
    status_code = 423


def api_exception_handler(exc, context):
    if isinstance(exc, CajaError):
        return Response({'ok': False, 'error': exc.as_dict()}, status=exc.status_code)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        # unhandled errors propagate to Django so they are logged with a traceback
        return None
    if isinstance(exc, drf_exceptions.ValidationError):
        # serializer errors are bad input just like the ledger's own checks
        payload = {'code': ValidationError.code, 'message': 'invalid request', 'detail': resp.data}
        return Response({'ok': False, 'error': payload}, status=resp.status_code)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)

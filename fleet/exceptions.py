import logging
from contextlib import contextmanager

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

DUPLICATE_REGION_MESSAGE = 'You cannot add a region with the same name or code. This region already exists.'


class DuplicateRegion(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = DUPLICATE_REGION_MESSAGE
    default_code = 'duplicate_region'


class InvalidTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This change is not allowed for the current approval state.'
    default_code = 'invalid_transition'


class DeviceUnavailable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'One or more selected devices are not available for a demo.'
    default_code = 'device_unavailable'


class NoWarehouse(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'No warehouse available to return this device.'
    default_code = 'no_warehouse'


class StoreError(APIException):
    """A write rejected by the database, surfaced with its own message."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The database rejected this change.'
    default_code = 'store_error'


@contextmanager
def store_errors(what: str):
    """Re-raise database errors from the wrapped block as :class:`StoreError`."""
    try:
        yield
    except DatabaseError as exc:
        logger.warning('%s failed: %s', what, exc)
        raise StoreError(str(exc)) from exc


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view'))
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    if isinstance(exc, (DuplicateRegion, InvalidTransition, DeviceUnavailable, NoWarehouse, StoreError)):
        detail = str(exc.detail)
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)

"""
Postal code lookup used to prefill hospital city/state.

The lookup is a convenience only: callers treat :class:`PincodeLookupError`
as a warning and keep the form usable.
"""
import logging
import re

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

PINCODE_RE = re.compile(r'^\d{6}$')


class PincodeLookupError(Exception):
    pass


def lookup_pincode(pincode: str, *, session=None) -> dict:
    """Return ``{'pincode', 'city', 'state'}`` for a six digit postal code."""
    pincode = (pincode or '').strip()
    if not PINCODE_RE.match(pincode):
        raise PincodeLookupError('Enter a valid 6 digit pincode.')
    http = session or requests
    url = settings.PINCODE_API_URL.rstrip('/') + '/' + pincode
    try:
        resp = http.get(url, timeout=settings.PINCODE_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning('pincode lookup failed for %s: %s', pincode, exc)
        raise PincodeLookupError('Unable to fetch location.') from exc
    office = None
    if isinstance(data, list) and data and isinstance(data[0], dict):
        offices = data[0].get('PostOffice') or []
        office = offices[0] if offices else None
    if not office:
        logger.warning('pincode %s returned no post office', pincode)
        raise PincodeLookupError('No location found for this pincode.')
    return {
        'pincode': pincode,
        'city': office.get('District'),
        'state': office.get('State'),
    }

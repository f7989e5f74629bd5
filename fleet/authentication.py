"""
Token authentication class referenced from settings.

Kept out of the view modules so DRF can import it while settings load
without pulling in the views.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication with the ``Token`` keyword."""

    keyword = 'Token'

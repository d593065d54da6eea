"""
Token authentication for the dashboard API.

Clients send ``Authorization: Token <key>``; keys are issued by
``POST /api/auth/login``.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication with the ``Token`` keyword pinned.

    Referenced from settings by import path so views never import it.
    """

    keyword = 'Token'

# blog_api/auth.py
"""Shared authentication dependencies."""

import logging
import secrets

from fastapi import Header

from blog_api.config import get_settings
from blog_api.responses import ApiErrors

logger = logging.getLogger(__name__)


def require_admin_token(
    authorization: str | None = Header(default=None),
) -> None:
    """Validate the admin bearer token. Fails closed if ADMIN_TOKEN is not set."""
    expected_token = get_settings().ADMIN_TOKEN

    if not expected_token:
        logger.error("ADMIN_TOKEN is not set; rejecting admin request")
        raise ApiErrors.internal_error("Server misconfiguration: admin authentication not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token or not secrets.compare_digest(token.strip(), expected_token):
        raise ApiErrors.unauthorized("Invalid or missing bearer token")

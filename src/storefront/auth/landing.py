# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Where to send a browser right after a successful login."""

from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import urlsplit

from storefront.auth.accounts import Role
from storefront.auth.session import Identity
from storefront.permissions import AccessDecision, AccessPolicy

logger = logging.getLogger(__name__)

ADMIN_LANDING_URL = "/admin/dashboard"
DEFAULT_LANDING_URL = "/home"

# scan order: the first role found wins
_LANDING_BY_ROLE = ((Role.ADMIN, ADMIN_LANDING_URL),)


def is_local_url(url: str) -> bool:
    """True for same-origin paths like ``/orders/1?x=y``."""
    if not url or not url.startswith("/") or url.startswith("//") or "\\" in url:
        return False
    parts = urlsplit(url)
    return not parts.scheme and not parts.netloc


def landing_for_roles(roles: Iterable[Role]) -> str:
    held = set(roles)
    for role, url in _LANDING_BY_ROLE:
        if role in held:
            return url
    return DEFAULT_LANDING_URL


def route_after_login(identity: Identity, saved_request: Optional[str], policy: AccessPolicy) -> str:
    """Resume the saved request when the identity may see it, else land by role.

    The caller consumes the saved request whatever the outcome; it is never
    offered twice.
    """
    if saved_request and is_local_url(saved_request):
        path = urlsplit(saved_request).path
        if policy.evaluate(path, identity) is AccessDecision.ALLOW:
            return saved_request
        logger.info("Discarding saved request %s for %s (role %s)", path, identity.email, identity.role.value)
    return landing_for_roles([identity.role])

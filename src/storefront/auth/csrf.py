# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Double-submit CSRF tokens.

Form pages get a random nonce cookie and a signed copy of it in a hidden
``_csrf`` field. A state-changing POST must send both, and they must agree.
"""

from __future__ import annotations

import hmac
import logging
import os
import secrets

from fastapi import HTTPException, Request, Response
from itsdangerous import BadSignature, URLSafeSerializer

from storefront.auth.session import cookie_settings, signing_secret

logger = logging.getLogger(__name__)

COOKIE_NAME = os.getenv("STOREFRONT_CSRF_COOKIE", "storefront_csrf")
FIELD_NAME = "_csrf"


def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(secret_key=signing_secret(), salt="storefront.csrf.v1")


def issue_csrf_token(request: Request) -> str:
    """Return the signed form token for this browser, minting a nonce when it has none."""
    nonce = request.cookies.get(COOKIE_NAME, "") or getattr(request.state, "csrf_nonce", "")
    if not nonce:
        nonce = secrets.token_urlsafe(24)
        request.state.csrf_nonce = nonce
    return _serializer().dumps(nonce)


def attach_csrf_cookie(request: Request, response: Response) -> None:
    """Set the nonce cookie if ``issue_csrf_token`` minted one during this request."""
    nonce = getattr(request.state, "csrf_nonce", "")
    if nonce:
        response.set_cookie(COOKIE_NAME, nonce, **cookie_settings())


def verify_csrf_token(request: Request, token: str) -> None:
    nonce = request.cookies.get(COOKIE_NAME, "")
    try:
        signed = _serializer().loads(token or "")
    except BadSignature:
        signed = None
    if not nonce or not isinstance(signed, str) or not hmac.compare_digest(signed, nonce):
        logger.warning("CSRF check failed for %s %s", request.method, request.url.path)
        raise HTTPException(status_code=403, detail="Invalid CSRF token")

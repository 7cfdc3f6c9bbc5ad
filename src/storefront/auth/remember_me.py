# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Long-lived remember-me cookie.

The token is signed with its own secret (``STOREFRONT_REMEMBER_ME_KEY``) and
carries the account email plus a fingerprint of the current credential hash,
so a password change invalidates every outstanding token.
"""

from __future__ import annotations

import hashlib
import logging
import os
from typing import Optional

from fastapi import Response
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from storefront.auth.accounts import Account, AccountStore
from storefront.auth.session import cookie_settings

logger = logging.getLogger(__name__)

COOKIE_NAME = os.getenv("STOREFRONT_REMEMBER_ME_COOKIE", "storefront-remember-me")
DEFAULT_MAX_AGE_SECONDS = int(os.getenv("STOREFRONT_REMEMBER_ME_MAX_AGE", str(7 * 24 * 60 * 60)))


def _serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("STOREFRONT_REMEMBER_ME_KEY")
    if not secret:
        raise RuntimeError("Missing STOREFRONT_REMEMBER_ME_KEY in environment")
    return URLSafeTimedSerializer(secret_key=secret, salt="storefront.remember-me.v1")


def _fingerprint(credential_hash: str) -> str:
    return hashlib.sha256(credential_hash.encode("utf-8")).hexdigest()[:16]


class RememberMeService:
    def __init__(
        self,
        store: AccountStore,
        *,
        cookie_name: str = COOKIE_NAME,
        max_age: int = DEFAULT_MAX_AGE_SECONDS,
    ) -> None:
        self.store = store
        self.cookie_name = cookie_name
        self.max_age = max_age

    def issue(self, account: Account) -> str:
        return _serializer().dumps({"u": account.email, "f": _fingerprint(account.credential_hash)})

    def resolve(self, token: str) -> Optional[Account]:
        """Reload the account a token was issued for, or None if the token is unusable."""
        if not token:
            return None
        try:
            data = _serializer().loads(token, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            logger.debug("Rejected remember-me token (bad signature or expired)")
            return None
        if not isinstance(data, dict):
            return None
        account = self.store.find_by_email(str(data.get("u") or ""))
        if account is None or not account.active:
            return None
        if data.get("f") != _fingerprint(account.credential_hash):
            logger.debug("Rejected remember-me token for %s (credential changed)", account.email)
            return None
        return account

    def remember(self, response: Response, account: Account) -> None:
        response.set_cookie(
            self.cookie_name,
            self.issue(account),
            max_age=self.max_age,
            **cookie_settings(),
        )

    def forget(self, response: Response) -> None:
        response.delete_cookie(self.cookie_name, **cookie_settings())

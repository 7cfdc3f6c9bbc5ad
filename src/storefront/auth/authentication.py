# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from storefront.auth.accounts import Account, AccountStore
from storefront.auth.passwords import CredentialEncoder
from storefront.auth.session import Identity

logger = logging.getLogger(__name__)


def identity_for(account: Account, *, remembered: bool = False) -> Identity:
    return Identity(
        email=account.email,
        role=account.role,
        display_name=account.display_name,
        remembered=remembered,
    )


def authenticate(
    store: AccountStore,
    encoder: CredentialEncoder,
    username: str,
    password: str,
) -> Optional[Account]:
    """Return the account for a correct email/password pair, else None.

    Unknown email, inactive account and wrong password all give None, and
    each of them costs one hash verification.
    A hash made with outdated parameters is re-encoded on success.
    """
    account = store.find_by_email(username)
    if not account or not account.active:
        encoder.matches(password, encoder.dummy_hash)
        return None
    if not encoder.matches(password, account.credential_hash):
        return None
    if encoder.needs_rehash(account.credential_hash):
        new_hash = encoder.encode(password)
        store.update_credential_hash(account.email, new_hash)
        account = replace(account, credential_hash=new_hash)
        logger.info("Upgraded password hash parameters for %s", account.email)
    return account

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
import secrets
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


def _env_int(name: str) -> Optional[int]:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else None


class CredentialEncoder:
    """One-way adaptive password hashing (argon2id).

    ``time_cost`` is the work factor. Every hash embeds its own parameters, so
    hashes produced under an older work factor keep verifying after the
    configuration changes; ``needs_rehash`` reports them for upgrade.
    """

    def __init__(self, *, time_cost: Optional[int] = None, memory_cost: Optional[int] = None) -> None:
        kwargs = {}
        if time_cost is not None:
            kwargs["time_cost"] = time_cost
        if memory_cost is not None:
            kwargs["memory_cost"] = memory_cost
        self._ph = PasswordHasher(**kwargs)
        self._dummy_hash: Optional[str] = None

    @classmethod
    def from_env(cls) -> "CredentialEncoder":
        return cls(
            time_cost=_env_int("STOREFRONT_HASH_TIME_COST"),
            memory_cost=_env_int("STOREFRONT_HASH_MEMORY_COST"),
        )

    def encode(self, plain: str) -> str:
        if not plain:
            raise ValueError("Empty password")
        return self._ph.hash(plain)

    def matches(self, plain: str, hash_value: str) -> bool:
        if not hash_value or not plain:
            return False
        try:
            return self._ph.verify(hash_value, plain)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            # corrupt or foreign hash in the store
            return False

    @property
    def dummy_hash(self) -> str:
        """A hash of a random secret under the current parameters.

        Verifying against it costs the same as a real check, for logins whose
        account does not exist or cannot sign in.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self._ph.hash(secrets.token_urlsafe(16))
        return self._dummy_hash

    def needs_rehash(self, hash_value: str) -> bool:
        try:
            return self._ph.check_needs_rehash(hash_value)
        except InvalidHashError:
            return False


_DEFAULT: Optional[CredentialEncoder] = None


def default_encoder() -> CredentialEncoder:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = CredentialEncoder.from_env()
    return _DEFAULT


# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from storefront.auth.accounts import (
    Account,
    AccountStatus,
    AccountStore,
    DuplicateEmailError,
    Role,
    normalize_email,
)
from storefront.auth.passwords import CredentialEncoder
from storefront.core.validation import run_field_validators

logger = logging.getLogger(__name__)

# Form field names as posted by the registration page.
FORM_FIELDS = {
    "full_name": "fullName",
    "email": "email",
    "password": "password",
    "confirm_password": "confirmPassword",
    "phone_number": "phoneNumber",
}


@dataclass
class RegistrationRequest:
    full_name: str = ""
    email: str = ""
    password: str = field(default="", repr=False)
    confirm_password: str = field(default="", repr=False)
    phone_number: str = ""

    @classmethod
    def from_form(cls, form: Mapping[str, object]) -> "RegistrationRequest":
        values = {attr: str(form.get(name) or "") for attr, name in FORM_FIELDS.items()}
        return cls(**values)

    def as_values(self) -> Dict[str, str]:
        return {attr: getattr(self, attr) for attr in FORM_FIELDS}


@dataclass
class ValidationFailure:
    """Every field-level failure found in one submission."""

    errors: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, field_name: str, message: str) -> None:
        self.errors.setdefault(field_name, []).append(message)

    def has(self, field_name: str) -> bool:
        return bool(self.errors.get(field_name))

    def for_field(self, field_name: str) -> List[str]:
        return list(self.errors.get(field_name, []))

    def __bool__(self) -> bool:
        return bool(self.errors)


class RegistrationConflictError(Exception):
    """The store rejected the insert as a duplicate after validation had passed."""

    def __init__(self, email: str) -> None:
        super().__init__(f"An account with email '{email}' already exists")
        self.email = email


PASSWORD_MISMATCH = "Passwords do not match"
EMAIL_TAKEN = "An account with this email already exists"


class RegistrationService:
    """Customer self-registration.

    Validation runs in a fixed order and collects every failure before
    returning: field syntax, password confirmation, then email uniqueness
    (skipped when the email is already malformed). Only a clean submission
    reaches the store, and it reaches it exactly once.
    """

    def __init__(self, store: AccountStore, encoder: CredentialEncoder) -> None:
        self.store = store
        self.encoder = encoder

    def validate(self, request: RegistrationRequest) -> ValidationFailure:
        failure = ValidationFailure(errors=run_field_validators(request.as_values()))

        if request.password != request.confirm_password:
            failure.add("confirm_password", PASSWORD_MISMATCH)

        if not failure.has("email") and self.store.exists_by_email(request.email):
            failure.add("email", EMAIL_TAKEN)

        return failure

    def register(self, request: RegistrationRequest) -> Union[Account, ValidationFailure]:
        failure = self.validate(request)
        if failure:
            logger.info("Registration rejected: invalid fields %s", ", ".join(sorted(failure.errors)))
            return failure

        phone: Optional[str] = request.phone_number.strip() or None
        account = Account(
            email=normalize_email(request.email),
            display_name=request.full_name.strip(),
            credential_hash=self.encoder.encode(request.password),
            role=Role.CUSTOMER,
            status=AccountStatus.ACTIVE,
            phone_number=phone,
        )
        try:
            stored = self.store.insert(account)
        except DuplicateEmailError as exc:
            logger.warning("Registration conflict for %s: account created concurrently", account.email)
            raise RegistrationConflictError(account.email) from exc

        logger.info("Registered customer account %s", stored.email)
        return stored

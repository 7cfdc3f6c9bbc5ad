# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Field validators for the registration form.

Each validator takes the raw submitted value and returns an error message or
``None``. ``FIELD_VALIDATORS`` lists them per field in evaluation order; the
first message for a field is the one reported.

Length limits apply to the value with surrounding whitespace removed, so
``" A "`` is one character long and fails the two-character minimum.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

Validator = Callable[[str], Optional[str]]

FULL_NAME_MIN = 2
FULL_NAME_MAX = 100
PASSWORD_MIN = 8
PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[" + re.escape(PASSWORD_SYMBOLS) + r"]).{%d,}$" % PASSWORD_MIN
)
PHONE_RE = re.compile(r"^[+]?[(]?[0-9]{1,4}[)]?[-\s./0-9]{6,14}$")


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def required(message: str) -> Validator:
    def _check(value: str) -> Optional[str]:
        return message if _blank(value) else None

    return _check


def length_between(lo: int, hi: int, message: str) -> Validator:
    def _check(value: str) -> Optional[str]:
        n = len((value or "").strip())
        return None if lo <= n <= hi else message

    return _check


def email_shape(value: str) -> Optional[str]:
    try:
        validate_email((value or "").strip(), check_deliverability=False)
    except EmailNotValidError:
        return "Please enter a valid email address"
    return None


def password_strength(value: str) -> Optional[str]:
    if PASSWORD_RE.fullmatch(value or ""):
        return None
    return (
        f"Password must be at least {PASSWORD_MIN} characters and include uppercase, "
        "lowercase, number, and special character"
    )


def optional_phone(value: str) -> Optional[str]:
    v = (value or "").strip()
    if not v or PHONE_RE.fullmatch(v):
        return None
    return "Please enter a valid phone number"


FIELD_VALIDATORS: Dict[str, Tuple[Validator, ...]] = {
    "full_name": (
        required("Full name is required"),
        length_between(FULL_NAME_MIN, FULL_NAME_MAX, f"Full name must be between {FULL_NAME_MIN} and {FULL_NAME_MAX} characters"),
    ),
    "email": (
        required("Email is required"),
        email_shape,
    ),
    "password": (
        required("Password is required"),
        password_strength,
    ),
    "confirm_password": (
        required("Please confirm your password"),
    ),
    "phone_number": (
        optional_phone,
    ),
}


def run_field_validators(values: Dict[str, str]) -> Dict[str, List[str]]:
    """Validate every field, returning ``field -> [message]`` for the failing ones."""
    errors: Dict[str, List[str]] = {}
    for field, validators in FIELD_VALIDATORS.items():
        value = values.get(field) or ""
        for check in validators:
            msg = check(value)
            if msg:
                errors[field] = [msg]
                break
    return errors

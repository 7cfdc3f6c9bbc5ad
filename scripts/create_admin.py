#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from storefront.auth.accounts import DEFAULT_ACCOUNTS_PATH, Account, AccountStatus, DuplicateEmailError, Role, YamlAccountStore
from storefront.auth.passwords import default_encoder
from storefront.core.validation import email_shape, password_strength


def main() -> None:
    store = YamlAccountStore(DEFAULT_ACCOUNTS_PATH)

    email = input("Email: ").strip().lower()
    problem = email_shape(email)
    if problem:
        raise SystemExit(problem)
    name = input("Display name: ").strip() or email

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    problem = password_strength(pw1)
    if problem:
        raise SystemExit(problem)

    try:
        store.insert(
            Account(
                email=email,
                display_name=name,
                credential_hash=default_encoder().encode(pw1),
                role=Role.ADMIN,
                status=AccountStatus.ACTIVE,
            )
        )
    except DuplicateEmailError as exc:
        raise SystemExit(str(exc))
    print(f"OK -> {store.path}")


if __name__ == "__main__":
    main()

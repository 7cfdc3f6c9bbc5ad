# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import enum
import os
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

import yaml

# Anchor the default accounts.yml path to the project root (works well with editable installs).
BASE_DIR = Path(__file__).resolve().parents[3]
DEFAULT_ACCOUNTS_PATH = Path(
    os.getenv("STOREFRONT_ACCOUNTS_PATH", str(BASE_DIR / "data" / "accounts.yml"))
).resolve()


class Role(enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class AccountStatus(enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


def normalize_email(email: str) -> str:
    """Canonical account key: trimmed and lower-cased."""
    return (email or "").strip().lower()


@dataclass(frozen=True)
class Account:
    email: str
    display_name: str
    credential_hash: str
    role: Role = Role.CUSTOMER
    status: AccountStatus = AccountStatus.ACTIVE
    phone_number: Optional[str] = None
    account_id: str = ""
    created_at: str = ""

    @property
    def active(self) -> bool:
        return self.status is AccountStatus.ACTIVE


class DuplicateEmailError(Exception):
    """Raised by a store when inserting an email that already exists."""

    def __init__(self, email: str) -> None:
        super().__init__(f"An account with email '{email}' already exists")
        self.email = email


class AccountStore(Protocol):
    def exists_by_email(self, email: str) -> bool: ...

    def find_by_email(self, email: str) -> Optional[Account]: ...

    def insert(self, account: Account) -> Account: ...

    def update_credential_hash(self, email: str, credential_hash: str) -> None: ...


def _account_from_yaml(email: str, data: dict) -> Optional[Account]:
    key = normalize_email(email)
    if not key or not isinstance(data, dict):
        return None
    try:
        role = Role(str(data.get("role") or Role.CUSTOMER.value).strip().lower())
    except ValueError:
        role = Role.CUSTOMER
    try:
        status = AccountStatus(str(data.get("status") or AccountStatus.ACTIVE.value).strip().lower())
    except ValueError:
        status = AccountStatus.SUSPENDED
    phone = str(data.get("phone_number") or "").strip() or None
    return Account(
        email=key,
        display_name=str(data.get("display_name") or "").strip(),
        credential_hash=str(data.get("password_hash") or "").strip(),
        role=role,
        status=status,
        phone_number=phone,
        account_id=str(data.get("id") or ""),
        created_at=str(data.get("created_at") or ""),
    )


def _account_to_yaml(account: Account) -> dict:
    out = {
        "id": account.account_id,
        "display_name": account.display_name,
        "role": account.role.value,
        "status": account.status.value,
        "password_hash": account.credential_hash,
        "created_at": account.created_at,
    }
    if account.phone_number:
        out["phone_number"] = account.phone_number
    return out


class YamlAccountStore:
    """Account store kept in a YAML document keyed by normalised email.

    The mapping key is the uniqueness constraint; ``insert`` checks it under a
    lock together with the write, so two concurrent inserts of the same email
    cannot both succeed.
    """

    def __init__(self, path: Path = DEFAULT_ACCOUNTS_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._cache: Tuple[float, Dict[str, Account]] = (0.0, {})

    def _read_raw(self) -> dict:
        if not self.path.exists():
            return {"version": 1, "accounts": {}}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raw = {}
        if not isinstance(raw.get("accounts"), dict):
            raw["accounts"] = {}
        raw.setdefault("version", 1)
        return raw

    def _write_raw(self, raw: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
        os.replace(tmp, self.path)
        self._cache = (0.0, {})

    def _load(self) -> Dict[str, Account]:
        out: Dict[str, Account] = {}
        for email, data in self._read_raw()["accounts"].items():
            acc = _account_from_yaml(str(email), data)
            if acc is not None:
                out[acc.email] = acc
        return out

    def accounts(self) -> Dict[str, Account]:
        try:
            mtime = self.path.stat().st_mtime if self.path.exists() else 0.0
        except OSError:
            mtime = 0.0

        cached_mtime, cached = self._cache
        if mtime and mtime == cached_mtime and cached:
            return cached

        accounts = self._load()
        self._cache = (mtime, accounts)
        return accounts

    def exists_by_email(self, email: str) -> bool:
        return normalize_email(email) in self.accounts()

    def find_by_email(self, email: str) -> Optional[Account]:
        key = normalize_email(email)
        if not key:
            return None
        return self.accounts().get(key)

    def insert(self, account: Account) -> Account:
        key = normalize_email(account.email)
        if not key:
            raise ValueError("Account email is empty")
        stored = replace(
            account,
            email=key,
            account_id=account.account_id or str(uuid.uuid4()),
            created_at=account.created_at or datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        with self._lock:
            raw = self._read_raw()
            if key in {normalize_email(str(e)) for e in raw["accounts"]}:
                raise DuplicateEmailError(key)
            raw["accounts"][key] = _account_to_yaml(stored)
            self._write_raw(raw)
        return stored

    def update_credential_hash(self, email: str, credential_hash: str) -> None:
        key = normalize_email(email)
        with self._lock:
            raw = self._read_raw()
            data = raw["accounts"].get(key)
            if not isinstance(data, dict):
                raise KeyError(key)
            data["password_hash"] = credential_hash
            self._write_raw(raw)

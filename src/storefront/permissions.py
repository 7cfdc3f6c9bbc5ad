# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from fastapi import HTTPException, Request

from storefront.auth.accounts import Role
from storefront.auth.session import Identity


class Access(enum.Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    CUSTOMER = "customer"
    ADMIN = "admin"


class AccessDecision(enum.Enum):
    ALLOW = "allow"
    LOGIN_REQUIRED = "login_required"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AccessRule:
    """Path pattern plus the access it requires.

    A pattern ending in ``/**`` matches the prefix itself and everything below
    it; any other pattern matches the exact path only.
    """

    pattern: str
    access: Access

    @property
    def is_prefix(self) -> bool:
        return self.pattern.endswith("/**")

    @property
    def prefix(self) -> str:
        return self.pattern[:-3] if self.is_prefix else self.pattern

    def matches(self, path: str) -> bool:
        if not self.is_prefix:
            return path == self.pattern
        return path == self.prefix or path.startswith(self.prefix + "/")

    def specificity(self) -> Tuple[int, int]:
        # exact paths outrank any prefix; longer prefixes outrank shorter ones
        return (0 if self.is_prefix else 1, len(self.prefix))


DEFAULT_RULES: Tuple[AccessRule, ...] = (
    AccessRule("/", Access.PUBLIC),
    AccessRule("/home", Access.PUBLIC),
    AccessRule("/register", Access.PUBLIC),
    AccessRule("/login", Access.PUBLIC),
    AccessRule("/logout", Access.PUBLIC),
    AccessRule("/favicon.ico", Access.PUBLIC),
    AccessRule("/static/**", Access.PUBLIC),
    AccessRule("/css/**", Access.PUBLIC),
    AccessRule("/js/**", Access.PUBLIC),
    AccessRule("/images/**", Access.PUBLIC),
    AccessRule("/admin/**", Access.ADMIN),
    AccessRule("/cart/**", Access.CUSTOMER),
    AccessRule("/orders/**", Access.AUTHENTICATED),
)


def _role_grants(access: Access, role: Role) -> bool:
    if access is Access.PUBLIC or access is Access.AUTHENTICATED:
        return True
    if access is Access.ADMIN:
        return role is Role.ADMIN
    if access is Access.CUSTOMER:
        return role is Role.CUSTOMER
    raise ValueError(f"Unhandled access level {access!r}")


class AccessPolicy:
    def __init__(self, rules: Iterable[AccessRule] = DEFAULT_RULES, *, default: Access = Access.AUTHENTICATED) -> None:
        self.rules = tuple(rules)
        self.default = default

    def required_access(self, path: str) -> Access:
        matching = [r for r in self.rules if r.matches(path)]
        if not matching:
            return self.default
        return max(matching, key=AccessRule.specificity).access

    def evaluate(self, path: str, identity: Optional[Identity]) -> AccessDecision:
        access = self.required_access(path)
        if access is Access.PUBLIC:
            return AccessDecision.ALLOW
        if identity is None:
            return AccessDecision.LOGIN_REQUIRED
        if _role_grants(access, identity.role):
            return AccessDecision.ALLOW
        return AccessDecision.FORBIDDEN


def current_user_optional(request: Request) -> Optional[Identity]:
    return getattr(request.state, "user", None)


def require_user(request: Request) -> Identity:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=303, headers={"Location": "/login"})


def require_role(role: Role):
    def _dep(request: Request) -> Identity:
        u = require_user(request)
        if u.role is not role:
            raise HTTPException(status_code=403, detail="Forbidden")
        return u

    return _dep

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from fastapi import Request, Response
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from storefront.auth.accounts import Role

COOKIE_NAME = os.getenv("STOREFRONT_SESSION_COOKIE", "storefront_session")
DEFAULT_MAX_AGE_SECONDS = int(os.getenv("STOREFRONT_SESSION_MAX_AGE", "1800"))  # 30 minutes

_TRUTHY = {"1", "true", "yes", "y"}


def signing_secret() -> str:
    secret = os.getenv("STOREFRONT_SECRET_KEY") or os.getenv("SECRET_KEY")
    if not secret:
        raise RuntimeError("Missing STOREFRONT_SECRET_KEY (or SECRET_KEY) in environment")
    return secret


def _serializer() -> URLSafeTimedSerializer:
    salt = os.getenv("STOREFRONT_SESSION_SALT", "storefront.session.v1")
    return URLSafeTimedSerializer(secret_key=signing_secret(), salt=salt)


def cookie_settings() -> dict:
    secure = os.getenv("STOREFRONT_COOKIE_SECURE", "false").lower() in _TRUTHY
    return {"httponly": True, "samesite": "lax", "secure": secure}


@dataclass(frozen=True)
class Identity:
    """The authenticated principal attached to a request."""

    email: str
    role: Role
    display_name: str = ""
    remembered: bool = False


@dataclass(frozen=True)
class SessionData:
    session_id: str
    username: str = ""
    saved_request: str = ""
    saved_request_id: str = ""


class SessionProvider(Protocol):
    def establish_session(self, response: Response, username: str) -> None: ...

    def current_username(self, request: Request) -> Optional[str]: ...

    def invalidate(self, response: Response) -> None: ...

    def save_request(self, request: Request, response: Response, url: str) -> None: ...

    def consume_saved_request(self, request: Request) -> Optional[str]: ...


class SignedCookieSessionProvider:
    """Session state carried in a single signed, timestamped cookie.

    Payload keys: ``sid`` (session id), ``u`` (authenticated username),
    ``next`` (URL saved before a login redirect) and ``rid`` (one-time id of
    that saved URL). Establishing a session always issues a fresh ``sid`` and
    drops anything the anonymous session carried.

    Consumed ``rid`` values are kept in process until the cookie that carried
    them would have expired, so a resent pre-login cookie resumes nothing.
    """

    def __init__(self, *, cookie_name: str = COOKIE_NAME, max_age: int = DEFAULT_MAX_AGE_SECONDS) -> None:
        self.cookie_name = cookie_name
        self.max_age = max_age
        self._consumed: dict[str, float] = {}
        self._lock = threading.Lock()

    def _read(self, request: Request) -> Optional[SessionData]:
        token = request.cookies.get(self.cookie_name, "")
        if not token:
            return None
        try:
            data = _serializer().loads(token, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        if not isinstance(data, dict) or not data.get("sid"):
            return None
        return SessionData(
            session_id=str(data["sid"]),
            username=str(data.get("u") or "").strip(),
            saved_request=str(data.get("next") or "").strip(),
            saved_request_id=str(data.get("rid") or ""),
        )

    def _write(self, response: Response, payload: dict) -> None:
        response.set_cookie(
            self.cookie_name,
            _serializer().dumps(payload),
            max_age=self.max_age,
            **cookie_settings(),
        )

    def establish_session(self, response: Response, username: str) -> None:
        self._write(response, {"sid": secrets.token_urlsafe(16), "u": username})

    def current_username(self, request: Request) -> Optional[str]:
        sess = self._read(request)
        if not sess or not sess.username:
            return None
        return sess.username

    def invalidate(self, response: Response) -> None:
        response.delete_cookie(self.cookie_name, **cookie_settings())

    def save_request(self, request: Request, response: Response, url: str) -> None:
        sess = self._read(request)
        payload = {
            "sid": sess.session_id if sess else secrets.token_urlsafe(16),
            "next": url,
            "rid": secrets.token_urlsafe(16),
        }
        if sess and sess.username:
            payload["u"] = sess.username
        self._write(response, payload)

    def consume_saved_request(self, request: Request) -> Optional[str]:
        """Return the saved URL, at most once per ``save_request``."""
        sess = self._read(request)
        if not sess or not sess.saved_request or not sess.saved_request_id:
            return None
        now = time.monotonic()
        with self._lock:
            self._consumed = {rid: exp for rid, exp in self._consumed.items() if exp > now}
            if sess.saved_request_id in self._consumed:
                return None
            self._consumed[sess.saved_request_id] = now + self.max_age
        return sess.saved_request

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from storefront.auth.accounts import DEFAULT_ACCOUNTS_PATH, AccountStore, Role, YamlAccountStore
from storefront.auth.authentication import authenticate, identity_for
from storefront.auth.csrf import FIELD_NAME as CSRF_FIELD, attach_csrf_cookie, issue_csrf_token, verify_csrf_token
from storefront.auth.landing import landing_for_roles, route_after_login
from storefront.auth.passwords import CredentialEncoder, default_encoder
from storefront.auth.remember_me import RememberMeService
from storefront.auth.session import Identity, SessionProvider, SignedCookieSessionProvider
from storefront.permissions import AccessDecision, AccessPolicy, current_user_optional, require_role
from storefront.services.registration_service import (
    RegistrationConflictError,
    RegistrationRequest,
    RegistrationService,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

REMEMBER_ME_FIELD = "remember-me"

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the current user and a CSRF token."""
    base_ctx = {
        "current_user": current_user_optional(request),
        "csrf_field": CSRF_FIELD,
        "csrf_token": issue_csrf_token(request),
    }
    merged = {**base_ctx, **(ctx or {})}
    resp = templates.TemplateResponse(request, template_name, merged, status_code=status_code)
    attach_csrf_cookie(request, resp)
    return resp


def _requested_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


def _redisplay_registration(request: Request, reg: RegistrationRequest, *, errors=None, form_error="", status_code=200):
    # passwords are never echoed back
    values = {"fullName": reg.full_name, "email": reg.email, "phoneNumber": reg.phone_number}
    return _render(
        request,
        "register.html",
        {"values": values, "errors": errors or {}, "form_error": form_error},
        status_code=status_code,
    )


# ------------------ Routes ------------------


@router.get("/", response_class=HTMLResponse)
@router.get("/home", response_class=HTMLResponse)
def home(request: Request):
    return _render(request, "home.html")


@router.get("/register", response_class=HTMLResponse)
def register_get(request: Request):
    return _redisplay_registration(request, RegistrationRequest())


@router.post("/register")
async def register_post(request: Request):
    form = await request.form()
    verify_csrf_token(request, str(form.get(CSRF_FIELD) or ""))

    reg = RegistrationRequest.from_form(form)
    service: RegistrationService = request.app.state.registration
    try:
        result = service.register(reg)
    except RegistrationConflictError:
        return _redisplay_registration(
            request,
            reg,
            form_error="An account with this email already exists. Please sign in or try again.",
            status_code=409,
        )

    if isinstance(result, ValidationFailure):
        return _redisplay_registration(request, reg, errors=result.errors)
    return RedirectResponse(url="/login?registered", status_code=303)


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request):
    user = current_user_optional(request)
    if user:
        return RedirectResponse(url=landing_for_roles([user.role]), status_code=303)
    params = request.query_params
    return _render(
        request,
        "login.html",
        {
            "error": "error" in params,
            "logged_out": "logout" in params,
            "registered": "registered" in params,
        },
    )


@router.post("/login")
async def login_post(request: Request):
    form = await request.form()
    verify_csrf_token(request, str(form.get(CSRF_FIELD) or ""))

    state = request.app.state
    username = str(form.get("username") or "")
    account = authenticate(state.store, state.encoder, username, str(form.get("password") or ""))
    if not account:
        logger.warning("Failed login for %r", username.strip())
        return RedirectResponse(url="/login?error", status_code=303)

    identity = identity_for(account)
    sessions: SessionProvider = state.sessions
    target = route_after_login(identity, sessions.consume_saved_request(request), state.policy)

    request.state.authenticated = True
    resp = RedirectResponse(url=target, status_code=303)
    sessions.establish_session(resp, account.email)
    if form.get(REMEMBER_ME_FIELD):
        state.remember_me.remember(resp, account)
    logger.info("Login %s (role %s) -> %s", account.email, account.role.value, target)
    return resp


@router.post("/logout")
async def logout_post(request: Request):
    form = await request.form()
    verify_csrf_token(request, str(form.get(CSRF_FIELD) or ""))

    state = request.app.state
    request.state.logged_out = True
    resp = RedirectResponse(url="/login?logout", status_code=303)
    state.sessions.invalidate(resp)
    state.remember_me.forget(resp)
    user = current_user_optional(request)
    if user:
        logger.info("Logout %s", user.email)
    return resp


@router.get("/admin/dashboard", response_class=HTMLResponse)
def admin_dashboard(request: Request, user: Identity = Depends(require_role(Role.ADMIN))):
    return _render(request, "admin_dashboard.html", {"admin": user})


# ------------------ Application ------------------


def create_app(
    *,
    store: Optional[AccountStore] = None,
    encoder: Optional[CredentialEncoder] = None,
    sessions: Optional[SessionProvider] = None,
    policy: Optional[AccessPolicy] = None,
) -> FastAPI:
    store = store if store is not None else YamlAccountStore(DEFAULT_ACCOUNTS_PATH)
    encoder = encoder or default_encoder()
    sessions = sessions or SignedCookieSessionProvider()
    policy = policy or AccessPolicy()
    remember_me = RememberMeService(store)

    app = FastAPI(title="storefront")
    app.state.store = store
    app.state.encoder = encoder
    app.state.sessions = sessions
    app.state.policy = policy
    app.state.remember_me = remember_me
    app.state.registration = RegistrationService(store, encoder)

    def _resolve_identity(request: Request):
        """Return (identity, re-authenticated via remember-me, stale remember-me cookie)."""
        username = sessions.current_username(request)
        if username:
            account = store.find_by_email(username)
            if account and account.active:
                return identity_for(account), False, False

        token = request.cookies.get(remember_me.cookie_name, "")
        if not token:
            return None, False, False
        account = remember_me.resolve(token)
        if account is None:
            return None, False, True
        logger.info("Remember-me login %s", account.email)
        return identity_for(account, remembered=True), True, False

    @app.middleware("http")
    async def _auth_gate(request: Request, call_next):
        identity, remembered, stale_token = _resolve_identity(request)
        request.state.user = identity

        decision = policy.evaluate(request.url.path, identity)
        if decision is AccessDecision.LOGIN_REQUIRED:
            resp = RedirectResponse(url="/login", status_code=303)
            if request.method == "GET":
                sessions.save_request(request, resp, _requested_url(request))
        elif decision is AccessDecision.FORBIDDEN:
            logger.warning("Forbidden %s for %s (role %s)", request.url.path, identity.email, identity.role.value)
            resp = _render(request, "forbidden.html", status_code=403)
        else:
            resp = await call_next(request)

        # login and logout responses own the auth cookies they set
        if getattr(request.state, "authenticated", False) or getattr(request.state, "logged_out", False):
            return resp
        if remembered:
            sessions.establish_session(resp, identity.email)
        if stale_token:
            remember_me.forget(resp)
        return resp

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(router)
    return app


app = create_app()

import pytest

from storefront.auth.accounts import Role
from storefront.auth.landing import (
    ADMIN_LANDING_URL,
    DEFAULT_LANDING_URL,
    is_local_url,
    landing_for_roles,
    route_after_login,
)
from storefront.auth.session import Identity
from storefront.permissions import AccessPolicy

CUSTOMER = Identity(email="c@example.com", role=Role.CUSTOMER)
ADMIN = Identity(email="a@example.com", role=Role.ADMIN)

policy = AccessPolicy()


def test_role_landing_without_saved_request():
    assert route_after_login(ADMIN, None, policy) == ADMIN_LANDING_URL == "/admin/dashboard"
    assert route_after_login(CUSTOMER, None, policy) == DEFAULT_LANDING_URL == "/home"


@pytest.mark.parametrize("identity", [CUSTOMER, ADMIN])
def test_saved_order_request_is_resumed_for_any_role(identity):
    assert route_after_login(identity, "/orders/1", policy) == "/orders/1"
    assert route_after_login(identity, "/orders/1?tab=items", policy) == "/orders/1?tab=items"


def test_saved_admin_request_is_not_resumed_for_customer():
    assert route_after_login(CUSTOMER, "/admin/dashboard", policy) == "/home"
    assert route_after_login(ADMIN, "/admin/dashboard", policy) == "/admin/dashboard"


@pytest.mark.parametrize("url", ["//evil.example/x", "https://evil.example/", "orders/1", "/\\evil.example", ""])
def test_non_local_saved_urls_are_ignored(url):
    assert not is_local_url(url)
    assert route_after_login(CUSTOMER, url, policy) == "/home"


def test_admin_wins_when_several_roles_present():
    assert landing_for_roles([Role.CUSTOMER, Role.ADMIN]) == ADMIN_LANDING_URL
    assert landing_for_roles([Role.CUSTOMER]) == DEFAULT_LANDING_URL
    assert landing_for_roles([]) == DEFAULT_LANDING_URL

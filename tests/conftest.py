import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import re
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.auth.accounts import Account, AccountStatus, Role, YamlAccountStore
from storefront.auth.passwords import CredentialEncoder

CSRF_RE = re.compile(r'name="_csrf" value="([^"]+)"')

PASSWORD = "Secret123!"


@pytest.fixture(autouse=True)
def signing_secrets(monkeypatch):
    monkeypatch.setenv("STOREFRONT_SECRET_KEY", "test-session-secret")
    monkeypatch.setenv("STOREFRONT_REMEMBER_ME_KEY", "test-remember-me-secret")


@pytest.fixture()
def encoder() -> CredentialEncoder:
    # cheap parameters keep the suite fast; production uses argon2 defaults
    return CredentialEncoder(time_cost=1, memory_cost=1024)


@pytest.fixture()
def store(tmp_path: Path) -> YamlAccountStore:
    return YamlAccountStore(tmp_path / "data" / "accounts.yml")


@pytest.fixture()
def make_account(store, encoder):
    def _make(
        email: str,
        *,
        role: Role = Role.CUSTOMER,
        status: AccountStatus = AccountStatus.ACTIVE,
        password: str = PASSWORD,
        name: str = "Test User",
    ) -> Account:
        return store.insert(
            Account(
                email=email,
                display_name=name,
                credential_hash=encoder.encode(password),
                role=role,
                status=status,
            )
        )

    return _make


@pytest.fixture()
def customer(make_account) -> Account:
    return make_account("carol@example.com", name="Carol Customer")


@pytest.fixture()
def admin(make_account) -> Account:
    return make_account("ada@example.com", role=Role.ADMIN, name="Ada Admin")


@pytest.fixture()
def client(store, encoder):
    app = create_app(store=store, encoder=encoder)
    with TestClient(app, follow_redirects=False) as c:
        yield c


def csrf_token(client: TestClient, path: str = "/login") -> str:
    r = client.get(path)
    assert r.status_code == 200, r.status_code
    m = CSRF_RE.search(r.text)
    assert m, f"no CSRF field on {path}"
    return m.group(1)


def login(client: TestClient, email: str, password: str = PASSWORD, *, remember: bool = False):
    data = {"username": email, "password": password, "_csrf": csrf_token(client, "/register")}
    if remember:
        data["remember-me"] = "on"
    return client.post("/login", data=data)

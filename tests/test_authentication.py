from storefront.auth.accounts import AccountStatus
from storefront.auth.authentication import authenticate, identity_for
from storefront.auth.passwords import CredentialEncoder

from conftest import PASSWORD


def test_correct_credentials(store, encoder, customer):
    account = authenticate(store, encoder, "  CAROL@example.com ", PASSWORD)
    assert account is not None
    assert account.email == customer.email


def test_failures_are_indistinguishable(store, encoder, customer, make_account):
    make_account("sam@example.com", status=AccountStatus.SUSPENDED)
    assert authenticate(store, encoder, customer.email, "wrong") is None
    assert authenticate(store, encoder, "nobody@example.com", PASSWORD) is None
    assert authenticate(store, encoder, "sam@example.com", PASSWORD) is None
    assert authenticate(store, encoder, "", "") is None


def test_outdated_hash_is_upgraded_on_login(store, customer):
    stronger = CredentialEncoder(time_cost=2, memory_cost=1024)
    account = authenticate(store, stronger, customer.email, PASSWORD)

    assert account.credential_hash != customer.credential_hash
    stored = store.find_by_email(customer.email)
    assert stored.credential_hash == account.credential_hash
    assert not stronger.needs_rehash(stored.credential_hash)
    assert stronger.matches(PASSWORD, stored.credential_hash)


def test_identity_carries_role(admin):
    ident = identity_for(admin)
    assert ident.role is admin.role
    assert ident.email == "ada@example.com"
    assert not ident.remembered
    assert identity_for(admin, remembered=True).remembered


class CountingEncoder(CredentialEncoder):
    def __init__(self):
        super().__init__(time_cost=1, memory_cost=1024)
        self.verified = []

    def matches(self, plain, hash_value):
        self.verified.append(hash_value)
        return super().matches(plain, hash_value)


def test_unknown_and_inactive_accounts_still_verify_a_hash(store, customer, make_account):
    make_account("sam@example.com", status=AccountStatus.SUSPENDED)
    counting = CountingEncoder()

    assert authenticate(store, counting, "nobody@example.com", PASSWORD) is None
    assert authenticate(store, counting, "sam@example.com", PASSWORD) is None
    assert authenticate(store, counting, customer.email, "wrong") is None

    assert len(counting.verified) == 3
    assert counting.verified[0] == counting.verified[1] == counting.dummy_hash
    assert counting.verified[2] == customer.credential_hash

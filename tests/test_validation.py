import pytest

from storefront.core.validation import (
    email_shape,
    optional_phone,
    password_strength,
    run_field_validators,
)


@pytest.mark.parametrize("pw", ["abc12345", "ABC12345!", "Abcdefg!", "Abc12!", "Abc1234567"])
def test_weak_passwords_fail(pw):
    assert password_strength(pw)


@pytest.mark.parametrize("pw", ["Abc123!@", "Secret123!", "x" * 20 + "A1_"])
def test_strong_passwords_pass(pw):
    assert password_strength(pw) is None


def test_password_with_trailing_newline_fails():
    assert password_strength("Abc123!@\n")


@pytest.mark.parametrize("phone", ["", "   ", "+44 20 7946 0958", "(555) 123-4567", "0612345678"])
def test_phone_ok(phone):
    assert optional_phone(phone) is None


@pytest.mark.parametrize("phone", ["call me", "12", "+1 (555) 123-4567 ext 9"])
def test_phone_bad(phone):
    assert optional_phone(phone) == "Please enter a valid phone number"


def test_email_shape():
    assert email_shape("alice@example.com") is None
    assert email_shape("  Alice@Example.com ") is None
    assert email_shape("not-an-email")
    assert email_shape("a@")


def test_one_message_per_field_in_order():
    errors = run_field_validators(
        {"full_name": "", "email": "", "password": "", "confirm_password": "", "phone_number": "x"}
    )
    assert errors == {
        "full_name": ["Full name is required"],
        "email": ["Email is required"],
        "password": ["Password is required"],
        "confirm_password": ["Please confirm your password"],
        "phone_number": ["Please enter a valid phone number"],
    }


def test_full_name_length_counts_trimmed_value():
    assert "full_name" in run_field_validators({"full_name": " A "})
    assert "full_name" in run_field_validators({"full_name": "  A  "})
    assert "full_name" in run_field_validators({"full_name": "x" * 101})
    assert "full_name" not in run_field_validators({"full_name": "Al"})

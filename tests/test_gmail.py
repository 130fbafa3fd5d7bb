import pytest

from gmail import GmailAdmissionPolicy


@pytest.fixture()
def policy():
    return GmailAdmissionPolicy()


@pytest.mark.parametrize(
    "email",
    [
        "john.doe@gmail.com",
        "johndoe2024@gmail.com",
        "  Jane.Doe@GMAIL.com  ",
        "abcdef@gmail.com",
        "a" * 30 + "@gmail.com",
    ],
)
def test_admissible(policy, email):
    assert policy.is_admissible(email)


@pytest.mark.parametrize(
    "email",
    [
        None,
        "",
        "   ",
        "@gmail.com",
        "admin@yahoo.com",
        "john.doe@googlemail.com",
        "ab@gmail.com",
        "abc..def@gmail.com",
        "a..b@gmail.com",
        ".abcdef@gmail.com",
        "abcdef.@gmail.com",
        "john_doe@gmail.com",
        "john+tag@gmail.com",
        "a" * 31 + "@gmail.com",
        "John Doe <john.doe@gmail.com>",
        "john.doe@gmail.com@gmail.com",
    ],
)
def test_not_admissible(policy, email):
    assert not policy.is_admissible(email)


def test_five_character_username_is_rejected(policy):
    """
    admin@gmail.com is a well-formed Gmail address, but its 5-character
    username is below the 6-30 username-length rule, so admission refuses it.
    """
    assert policy.is_gmail_address("admin@gmail.com")
    assert not policy.is_admissible("admin@gmail.com")


def test_display_name_form_is_not_a_gmail_address(policy):
    assert not policy.is_gmail_address("John <john.doe@gmail.com>")


@pytest.mark.parametrize(
    "email",
    [
        "john..doe@gmail.com",
        ".johndoe@gmail.com",
        "johndoe.@gmail.com",
        "john doe@gmail.com",
        "john\"doe@gmail.com",
    ],
)
def test_malformed_local_part_is_not_a_gmail_address(policy, email):
    assert not policy.is_gmail_address(email)

from unittest.mock import patch

import pytest

from provisioning.credentials import CredentialError, collect_password, user_exists


def test_collect_password_returns_confirmed_entry():
    with patch("provisioning.credentials.getpass.getpass", side_effect=["s3cret", "s3cret"]) as prompt:
        assert collect_password() == "s3cret"
    assert prompt.call_count == 2


def test_collect_password_rejects_empty():
    with patch("provisioning.credentials.getpass.getpass", side_effect=["", ""]):
        with pytest.raises(CredentialError, match="empty"):
            collect_password()


def test_collect_password_rejects_mismatch():
    with patch("provisioning.credentials.getpass.getpass", side_effect=["one", "two"]):
        with pytest.raises(CredentialError, match="do not match"):
            collect_password()


def test_user_exists(no_such_user):
    assert not user_exists("ghost")


def test_user_exists_for_known_account(existing_user):
    assert user_exists("openclaw")

"""
Credential Collection Module

Prompts for the new account's password while the terminal is still
clean, i.e. before any log handler starts duplicating output.

License: MIT
"""

import getpass
import pwd


class CredentialError(Exception):
    """Raised when the password entry is empty or unconfirmed."""


def user_exists(username: str) -> bool:
    try:
        pwd.getpwnam(username)
        return True
    except KeyError:
        return False


def collect_password() -> str:
    """Prompt twice without echo and return the confirmed password."""
    password = getpass.getpass("Password: ")
    confirmation = getpass.getpass("Confirm Password: ")

    if not password:
        raise CredentialError("Password cannot be empty.")
    if password != confirmation:
        raise CredentialError("Passwords do not match.")

    return password

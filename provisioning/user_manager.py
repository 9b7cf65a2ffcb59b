"""
User Manager Module

Creates the unprivileged administrative account, sets its password and
hands it any SSH key material root was provisioned with.

License: MIT
"""

import shutil

from .base import SystemManager
from .credentials import user_exists


class UserManager(SystemManager):
    """Provisions the administrative account idempotently."""

    ADMIN_GROUP = "sudo"

    def create_user(self, username: str) -> bool:
        success, _ = self._run_command(["adduser", "--disabled-password", "--gecos", "", username])
        if not success:
            self.logger.error(f"Failed to create user {username}")
        return success

    def set_password(self, username: str, password: str) -> bool:
        # stdin keeps the password out of the process table
        success, _ = self._run_command(["chpasswd"], input_text=f"{username}:{password}\n")
        if not success:
            self.logger.error(f"Failed to set password for {username}")
        return success

    def grant_admin_group(self, username: str) -> bool:
        success, _ = self._run_command(["usermod", "-aG", self.ADMIN_GROUP, username])
        return success

    def root_has_keys(self) -> bool:
        keys = self.state.paths.root_authorized_keys
        return keys.is_file() and keys.stat().st_size > 0

    def copy_root_keys(self, username: str) -> bool:
        """Duplicate root's authorized_keys into the new account."""
        ssh_dir = self.state.paths.home_of(username) / ".ssh"
        target = ssh_dir / "authorized_keys"

        self.logger.info(f"Root SSH keys detected! Copying to {username} for passwordless login...")
        ssh_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.state.paths.root_authorized_keys, target)

        success, _ = self._run_command(["chown", "-R", f"{username}:{username}", str(ssh_dir)])
        if not success:
            return False

        ssh_dir.chmod(0o700)
        target.chmod(0o600)
        self.logger.info("Root SSH keys successfully copied.")
        return True

    def provision_user(self) -> bool:
        """
        Create the account unless it already exists.

        An existing account is left untouched: no password is applied and
        no keys are copied, so re-running against a provisioned host is safe.
        """
        username = self.state.username

        if user_exists(username):
            self.logger.info(f"User {username} already exists. Skipping creation.")
            return True

        if not self.state.password:
            self.logger.error(f"No password was collected for new user {username}")
            return False

        if not self.create_user(username):
            return False

        try:
            if not self.set_password(username, self.state.password):
                return False
        finally:
            self.state.clear_password()

        if not self.grant_admin_group(username):
            return False

        if self.root_has_keys():
            return self.copy_root_keys(username)

        return True

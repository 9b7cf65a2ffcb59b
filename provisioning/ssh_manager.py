"""
SSH Manager Module

Moves the SSH daemon to the chosen port and hardens it through a
high-precedence drop-in file. The proposed configuration is checked with
``sshd -t`` on disk before the running daemon is touched; a configuration
that fails the check is discarded and the daemon keeps serving its
previous settings.

License: MIT
"""

from pathlib import Path
from typing import List

from .base import SystemManager
from .run_state import SSHState
from .steps import StepResult


# "00-" sorts ahead of distribution drop-ins such as 50-cloud-init.conf,
# and sshd keeps the first value it reads for each directive.
DROPIN_NAME = "00-openclaw-security.conf"

CIPHERS = [
    "chacha20-poly1305@openssh.com",
    "aes256-gcm@openssh.com",
    "aes128-gcm@openssh.com",
    "aes256-ctr",
    "aes192-ctr",
    "aes128-ctr",
]

MACS = [
    "hmac-sha2-512-etm@openssh.com",
    "hmac-sha2-256-etm@openssh.com",
    "umac-128-etm@openssh.com",
    "hmac-sha2-512",
    "hmac-sha2-256",
    "umac-128@openssh.com",
]

LOGIN_GRACE_TIME = 30
MAX_AUTH_TRIES = 3


def render_sshd_dropin(username: str, port: int) -> str:
    """Render the hardened sshd drop-in for ``username`` on ``port``."""
    lines: List[str] = [
        "# OpenClaw Security Hardening - managed by openclaw-setup",
        f"Port {port}",
        "PermitRootLogin no",
        # Left on until the operator confirms key login works
        "PasswordAuthentication yes",
        "PermitEmptyPasswords no",
        "DebianBanner no",
        "",
        "# Restrict login to our dedicated user only",
        f"AllowUsers {username}",
        "",
        "# Limit brute-force window",
        f"LoginGraceTime {LOGIN_GRACE_TIME}",
        f"MaxAuthTries {MAX_AUTH_TRIES}",
        "",
        "# Strong cipher and MAC suites only",
        f"Ciphers {','.join(CIPHERS)}",
        f"MACs {','.join(MACS)}",
    ]
    return "\n".join(lines) + "\n"


class SSHManager(SystemManager):
    """Drives the LEGACY -> HARDENED transition of the SSH daemon."""

    @property
    def dropin_path(self) -> Path:
        return self.state.paths.sshd_config_dir / DROPIN_NAME

    def detect_ssh_service(self) -> str:
        """Ubuntu names the unit ``ssh``; most other distributions use ``sshd``."""
        success, output = self._run_command(
            ["systemctl", "list-unit-files", "ssh.service"],
            check=False
        )
        service = "ssh" if success and "ssh.service" in output else "sshd"
        self.logger.debug(f"SSH service unit: {service}")
        return service

    def backup_config(self) -> None:
        """Best-effort copy of the base sshd_config; never used for rollback."""
        try:
            self.state.create_backup_file(self.state.paths.sshd_config)
        except OSError as e:
            self.logger.warning(f"Could not back up {self.state.paths.sshd_config}: {e}")

    def detect_authorized_keys(self) -> bool:
        keys = self.state.paths.home_of(self.state.username) / ".ssh" / "authorized_keys"
        detected = keys.is_file() and keys.stat().st_size > 0

        if detected:
            self.logger.info(f"  -> SSH keys detected for {self.state.username}. Password auth will remain ON for safety.")
            self.logger.info("     You will be given a command to disable it after verifying key login.")
        else:
            self.logger.info(f"  -> No SSH Keys found for {self.state.username}. Password Authentication ENABLED.")
        return detected

    def write_dropin(self) -> Path:
        self.state.paths.sshd_config_dir.mkdir(parents=True, exist_ok=True)
        self.dropin_path.write_text(render_sshd_dropin(self.state.username, self.state.ssh_port))
        self.dropin_path.chmod(0o644)
        self.logger.debug(f"Wrote {self.dropin_path}")
        return self.dropin_path

    def validate_config(self) -> bool:
        """Run the daemon's own syntax check against the on-disk configuration."""
        success, output = self._run_command(["sshd", "-t"], check=False)
        if not success:
            self.logger.error(f"sshd -t rejected the configuration: {output.strip()}")
        return success

    def discard_dropin(self) -> None:
        """Remove the proposed drop-in, leaving the daemon on its previous settings."""
        self.logger.warning("   Removing the drop-in file to prevent lockout...")
        self.dropin_path.unlink(missing_ok=True)
        self.logger.warning("   SSH config reverted. Please check your settings and re-run the script.")

    def _socket_activated(self) -> bool:
        success, output = self._run_command(["systemctl", "is-enabled", "ssh.socket"], check=False)
        return success and "enabled" in output

    def restart_daemon(self) -> bool:
        """Apply the validated configuration; the new port takes effect here."""
        self._run_command(["systemctl", "daemon-reload"], check=False)

        # Socket-activated sshd takes its listen port from ssh.socket
        if self._socket_activated():
            success, _ = self._run_command(["systemctl", "restart", "ssh.socket"])
            if not success:
                return False

        success, _ = self._run_command(["systemctl", "restart", self.state.ssh_service])
        return success

    def harden_ssh(self) -> StepResult:
        """
        Move SSH from LEGACY to HARDENED.

        Returns:
            StepResult: success once the daemon restarted on the new
            configuration; when the drop-in cannot be written or fails the
            syntax check, the result carries ``discard_dropin`` as its
            compensating action.
        """
        if self.state.ssh_state is SSHState.HARDENED:
            return StepResult(True, "SSH already hardened")

        self.state.ssh_service = self.detect_ssh_service()
        self.backup_config()
        self.state.ssh_keys_detected = self.detect_authorized_keys()

        try:
            self.write_dropin()
        except OSError as e:
            return StepResult(
                False,
                f"CRITICAL: could not write {self.dropin_path}: {e}",
                compensate=self.discard_dropin
            )

        if not self.validate_config():
            return StepResult(
                False,
                "CRITICAL: SSH configuration syntax error detected!",
                compensate=self.discard_dropin
            )

        self.logger.info("  -> SSH configuration syntax validated successfully.")

        if not self.restart_daemon():
            return StepResult(False, f"Failed to restart {self.state.ssh_service}")

        self.state.ssh_state = SSHState.HARDENED
        return StepResult(True, f"SSH now listening on port {self.state.ssh_port}")

    def disable_password_auth_command(self) -> str:
        """Follow-up command the operator runs once key login is confirmed."""
        return (
            f"sudo sed -i 's/^PasswordAuthentication yes/PasswordAuthentication no/' {self.dropin_path}"
            f" && sudo sshd -t && sudo systemctl restart {self.state.ssh_service}"
        )

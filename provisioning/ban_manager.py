"""
Ban Manager Module

Points Fail2Ban's sshd jail at the relocated SSH port and the daemon's log
source, then restarts the ban daemon. A jail still watching the old port
would monitor a dead channel and miss every attack on the new one.

License: MIT
"""

from .base import SystemManager


JAIL_SETTINGS = {
    "maxretry": "5",
    "findtime": "10m",
    "bantime": "24h",
}


def render_jail(port: int) -> str:
    """Render the sshd jail for ``port``."""
    lines = [
        "[sshd]",
        "enabled = true",
        f"port = {port}",
        "logpath = %(sshd_log)s",
        "backend = auto",
    ]
    lines.extend(f"{key} = {value}" for key, value in JAIL_SETTINGS.items())
    return "\n".join(lines) + "\n"


class BanManager(SystemManager):
    """Manages the Fail2Ban sshd jail."""

    SERVICE = "fail2ban"

    def _is_fail2ban_running(self) -> bool:
        success, output = self._run_command(["systemctl", "is-active", self.SERVICE], check=False)
        return success and output.strip() == "active"

    def write_jail(self) -> None:
        jail_path = self.state.paths.fail2ban_jail
        jail_path.parent.mkdir(parents=True, exist_ok=True)
        jail_path.write_text(render_jail(self.state.ssh_port))
        self.logger.info(f"Fail2Ban sshd jail now watches port {self.state.ssh_port}")

    def configure_ban_daemon(self) -> bool:
        """
        Write the jail and (re)start Fail2Ban.

        Returns:
            bool: True if the service was enabled and restarted
        """
        self.write_jail()

        for command in (["systemctl", "enable", self.SERVICE], ["systemctl", "restart", self.SERVICE]):
            success, _ = self._run_command(command)
            if not success:
                self.logger.error(f"Could not {command[1]} {self.SERVICE}")
                return False

        if not self._is_fail2ban_running():
            self.logger.warning("Fail2Ban was restarted but does not report active yet")

        return True

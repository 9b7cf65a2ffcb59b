"""
Maintenance Module

Enables unattended security upgrades and NTP time synchronization.

License: MIT
"""

from .base import APT_ENV, SystemManager


class MaintenanceConfigurator(SystemManager):
    """Turns on the services that keep the host patched and on time."""

    TIME_SERVICE = "systemd-timesyncd"

    def enable_unattended_upgrades(self) -> bool:
        success, _ = self._run_command(
            ["dpkg-reconfigure", "-f", "noninteractive", "unattended-upgrades"],
            env=APT_ENV
        )
        if success:
            self.logger.info("Automatic security updates enabled")
        return success

    def enable_time_sync(self) -> bool:
        for action in ("enable", "start"):
            success, _ = self._run_command(["systemctl", action, self.TIME_SERVICE])
            if not success:
                return False
        self.logger.info("NTP time synchronization enabled")
        return True

    def configure(self) -> bool:
        return self.enable_unattended_upgrades() and self.enable_time_sync()

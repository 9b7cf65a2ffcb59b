"""
System Updates Module

Applies package list refreshes, upgrades and cleanup non-interactively so
that dpkg never stops on a modified-config prompt.

License: MIT
"""

from .base import APT_ENV, SystemManager


class SystemUpdater(SystemManager):
    """Brings installed packages up to date."""

    # Keep locally modified config files instead of prompting
    DPKG_OPTIONS = [
        "-o", "Dpkg::Options::=--force-confdef",
        "-o", "Dpkg::Options::=--force-confold"
    ]

    def update_package_lists(self) -> bool:
        """Update package lists."""
        self.logger.info("Updating package lists...")

        success, _ = self._run_command(["apt-get", "update", "-y", "-q"], env=APT_ENV)
        if success:
            self.logger.info("Package lists updated successfully")
            return True
        else:
            self.logger.error("Failed to update package lists")
            return False

    def upgrade_packages(self) -> bool:
        """Upgrade installed packages; apt-get is a no-op when nothing is pending."""
        self.logger.info("Upgrading packages...")

        success, _ = self._run_command(
            ["apt-get", "upgrade", "-y", "-q"] + self.DPKG_OPTIONS,
            env=APT_ENV
        )

        if success:
            self.logger.info("Packages upgraded successfully")
            return True
        else:
            self.logger.error("Package upgrade failed")
            return False

    def cleanup_packages(self) -> bool:
        """Remove packages that are no longer needed."""
        self.logger.info("Cleaning up packages...")

        success, _ = self._run_command(["apt-get", "autoremove", "-y", "-q"], env=APT_ENV)

        if success:
            self.logger.info("Package cleanup completed successfully")
            return True
        else:
            self.logger.error("Package cleanup failed")
            return False

    def update_system(self) -> bool:
        """
        Refresh, upgrade and clean the installed package set.

        Returns:
            bool: True if every stage succeeded
        """
        if not self.update_package_lists():
            return False

        if not self.upgrade_packages():
            return False

        if not self.cleanup_packages():
            return False

        self.logger.info("System updates completed successfully")
        return True

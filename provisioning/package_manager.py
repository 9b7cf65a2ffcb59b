"""
Package Manager Module

Installs the packages the later provisioning stages depend on, skipping
anything dpkg already reports as installed.

License: MIT
"""

from typing import List

from .base import APT_ENV, SystemManager


class PackageManager(SystemManager):
    """Installs required packages with idempotency."""

    REQUIRED_PACKAGES = [
        "curl",
        "wget",
        "git",
        "unzip",
        "sudo",
        "ufw",
        "fail2ban",
        "unattended-upgrades",
        "systemd-timesyncd"
    ]

    def _is_package_installed(self, package_name: str) -> bool:
        """Check if a package is installed."""
        success, output = self._run_command(
            ["dpkg-query", "-W", "-f=${Status}", package_name],
            check=False
        )
        return success and "install ok installed" in output

    def missing_packages(self) -> List[str]:
        return [p for p in self.REQUIRED_PACKAGES if not self._is_package_installed(p)]

    def install_required_packages(self) -> bool:
        """
        Install every required package that is not yet present.

        Returns:
            bool: True if all required packages are installed afterwards
        """
        need_installation = self.missing_packages()

        self.logger.info(f"Already installed: {len(self.REQUIRED_PACKAGES) - len(need_installation)} packages")

        if not need_installation:
            self.logger.info("All required packages are already installed")
            return True

        self.logger.info(f"Installing {len(need_installation)} packages: {' '.join(need_installation)}")

        success, _ = self._run_command(
            ["apt-get", "install", "-y", "-q"] + need_installation,
            env=APT_ENV
        )

        if success:
            self.logger.info("Required packages installed successfully")
            return True
        else:
            self.logger.error("Failed to install required packages")
            return False

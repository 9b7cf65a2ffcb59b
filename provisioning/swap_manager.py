"""
Swap Manager Module

Makes sure the host has at least one active swap area, creating a
persistent swapfile when none exists.

License: MIT
"""

from .base import SystemManager


class SwapManager(SystemManager):
    """Creates and registers a swapfile when the host has no swap."""

    SWAP_SIZE_MB = 2048
    FSTAB_ENTRY = "{path} none swap sw 0 0"

    def has_active_swap(self) -> bool:
        success, output = self._run_command(["swapon", "--show"], check=False)
        return success and bool(output.strip())

    def _allocate(self) -> bool:
        swapfile = str(self.state.paths.swapfile)

        success, _ = self._run_command(
            ["fallocate", "-l", f"{self.SWAP_SIZE_MB // 1024}G", swapfile],
            check=False
        )
        if success:
            return True

        # fallocate is unsupported on some filesystems
        self.logger.info("fallocate unavailable, writing swapfile with dd...")
        success, _ = self._run_command([
            "dd", "if=/dev/zero", f"of={swapfile}", "bs=1M", f"count={self.SWAP_SIZE_MB}"
        ])
        return success

    def register_in_fstab(self) -> None:
        """Append the swapfile to the persistent swap table once."""
        fstab = self.state.paths.fstab
        swapfile = str(self.state.paths.swapfile)

        content = fstab.read_text() if fstab.exists() else ""
        if swapfile in content:
            self.logger.info("Swapfile already listed in fstab")
            return

        if content and not content.endswith("\n"):
            content += "\n"
        fstab.write_text(content + self.FSTAB_ENTRY.format(path=swapfile) + "\n")
        self.logger.info("Swapfile added to fstab")

    def ensure_swap(self) -> bool:
        """
        Create a swapfile unless swap is already active.

        Returns:
            bool: True if swap is active afterwards
        """
        if self.has_active_swap():
            self.logger.info("Swap space already exists. Skipping.")
            return True

        self.logger.info(f"No swap space detected. Creating a {self.SWAP_SIZE_MB // 1024}GB swapfile...")
        swapfile = str(self.state.paths.swapfile)

        if not self._allocate():
            self.logger.error("Failed to allocate swapfile")
            return False

        for command in (["chmod", "600", swapfile], ["mkswap", swapfile], ["swapon", swapfile]):
            success, _ = self._run_command(command)
            if not success:
                return False

        self.register_in_fstab()
        self.logger.info("Swapfile created and activated successfully.")
        return True

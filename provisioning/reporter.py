"""
Reporter Module

Detects the server address, builds the closing connection instructions
and schedules the reboot that applies kernel updates.

License: MIT
"""

import time
from typing import List, Optional

from .base import SystemManager


DASHBOARD_PORT = 18789


class Reporter(SystemManager):
    """Final report and reboot."""

    REBOOT_DELAY = 10

    def _route_source_address(self) -> Optional[str]:
        # Local tools only, no external lookup service
        success, output = self._run_command(["ip", "route", "get", "1.1.1.1"], check=False)
        if not success:
            return None
        tokens = output.split()
        if "src" in tokens and tokens.index("src") + 1 < len(tokens):
            return tokens[tokens.index("src") + 1]
        return None

    def _first_host_address(self) -> Optional[str]:
        success, output = self._run_command(["hostname", "-I"], check=False)
        if success and output.split():
            return output.split()[0]
        return None

    def detect_server_ip(self) -> str:
        address = self._route_source_address() or self._first_host_address()
        if address:
            self.state.server_ip = address
        return self.state.server_ip

    def connection_lines(self) -> List[str]:
        port = self.state.ssh_port
        target = f"{self.state.username}@{self.state.server_ip}"
        return [
            "IMPORTANT INFO:",
            f"  SSH Port: {port}",
            f"  Username: {self.state.username}",
            f"  Server:   {self.state.server_ip}",
            "",
            "HOW TO CONNECT:",
            f"  ssh -p {port} {target}",
            "",
            "ACCESS YOUR DASHBOARD (SSH Tunnel - run from your LOCAL computer):",
            f"  ssh -p {port} -L {DASHBOARD_PORT}:localhost:{DASHBOARD_PORT} {target}",
            f"  Then open: http://localhost:{DASHBOARD_PORT}",
        ]

    def password_auth_lines(self, disable_command: str) -> List[str]:
        """Follow-up instructions, only meaningful when SSH keys were detected."""
        if not self.state.ssh_keys_detected:
            return []
        return [
            "Password authentication is currently ON for your safety.",
            "After you confirm you can log in with your SSH key,",
            "run this command on the server to disable password login:",
            "",
            f"  {disable_command}",
            "",
        ]

    def reconnect_lines(self) -> List[str]:
        return [
            f"The server will reboot in {self.REBOOT_DELAY} seconds to apply kernel updates.",
            "It may take about a minute to come back online.",
            "After reboot, reconnect with:",
            f"  ssh -p {self.state.ssh_port} {self.state.username}@{self.state.server_ip}",
        ]

    def reboot(self, delay: Optional[int] = None) -> bool:
        time.sleep(self.REBOOT_DELAY if delay is None else delay)
        success, _ = self._run_command(["reboot"])
        return success

"""
Firewall Manager Module

Handles UFW configuration for the provisioned host: deny inbound by
default, allow outbound, and rate-limit the relocated SSH port.

The firewall may only be enabled once the SSH daemon is listening on the
new port. Enabling a default-deny policy while SSH still sits on its old,
un-allowed port would cut the only remote channel to a headless host, so
``configure_firewall`` refuses to run unless the run state says SSH has
been hardened.

License: MIT
"""

from typing import Dict, List

from .base import SystemManager
from .run_state import SSHState


class FirewallOrderingError(RuntimeError):
    """Raised when the firewall is configured before SSH reached HARDENED."""


class FirewallManager(SystemManager):
    """Manages UFW firewall configuration with idempotency."""

    DEFAULT_POLICIES = [
        ("deny", "incoming"),
        ("allow", "outgoing")
    ]

    def _is_ufw_active(self) -> bool:
        """Check if UFW is active."""
        success, output = self._run_command(["ufw", "status"], check=False)
        return success and "Status: active" in output

    def _get_ufw_rules(self) -> List[str]:
        """Get current UFW rules."""
        success, output = self._run_command(["ufw", "status", "numbered"], check=False)
        rules = []
        if success:
            for line in output.split('\n'):
                if line.strip() and '[' in line and ']' in line:
                    # Extract rule from numbered output
                    rules.append(line.split(']', 1)[1].strip())
        return rules

    def _rule_exists(self, rule_pattern: str) -> bool:
        """Check if a specific rule exists."""
        return any(rule_pattern.lower() in rule.lower() for rule in self._get_ufw_rules())

    def configure_default_policies(self) -> bool:
        """Configure restrictive default policies."""
        for action, direction in self.DEFAULT_POLICIES:
            self.logger.info(f"Setting default {direction} policy to {action}...")

            success, _ = self._run_command(["ufw", "default", action, direction])

            if not success:
                self.logger.error(f"Failed to set default {direction} policy")
                return False

        return True

    def add_ssh_rule(self, port: int) -> bool:
        """Allow the SSH port, throttling repeated connections from one source."""
        rule = f"{port}/tcp"

        success, _ = self._run_command(["ufw", "limit", rule, "comment", "SSH rate limit"])

        if not success:
            self.logger.error(f"Failed to add rate-limited rule for {rule}")
            return False

        self.logger.info(f"✓ Rate-limited SSH rule added for {rule}")
        return True

    def enable_ufw(self) -> bool:
        """Enable UFW firewall."""
        if self._is_ufw_active():
            self.logger.info("UFW is already active")
            return True

        self.logger.info("Enabling UFW firewall...")

        success, _ = self._run_command(["ufw", "--force", "enable"])

        if success:
            self.logger.info("UFW firewall enabled successfully")
            return True
        else:
            self.logger.error("Failed to enable UFW firewall")
            return False

    def verify_ufw_configuration(self) -> Dict[str, bool]:
        """Verify UFW configuration."""
        return {
            "ufw_active": self._is_ufw_active(),
            "rule_ssh_rate_limit": self._rule_exists(f"{self.state.ssh_port}/tcp")
        }

    def configure_firewall(self) -> bool:
        """
        Main firewall configuration function.

        Raises:
            FirewallOrderingError: if SSH has not reached the HARDENED state

        Returns:
            bool: True if the firewall is active with the SSH rule in place
        """
        if self.state.ssh_state is not SSHState.HARDENED:
            raise FirewallOrderingError(
                "Refusing to enable the firewall before SSH listens on the new port"
            )

        self.logger.info("Starting UFW firewall configuration...")

        if not self.configure_default_policies():
            return False

        if not self.add_ssh_rule(self.state.ssh_port):
            return False

        # Safe now: SSH is already listening on the allowed port
        if not self.enable_ufw():
            return False

        verification = self.verify_ufw_configuration()
        if not all(verification.values()):
            failed = [check for check, passed in verification.items() if not passed]
            self.logger.warning(f"UFW verification checks failed: {', '.join(failed)}")

        return True

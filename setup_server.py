#!/usr/bin/env python3
"""
OpenClaw Server Setup - Main Provisioning Script

Provisions a fresh Debian/Ubuntu VPS: patches the system, creates swap and
a restricted admin user, moves SSH to a hardened custom port, enables the
firewall and Fail2Ban, turns on automatic security updates and installs
OpenClaw as the new user.

WARNING: must be run as root.

License: MIT
Version: 1.0
"""

import argparse
import logging
import signal
import sys
import time
from datetime import datetime
from typing import List, Optional

from provisioning import __version__
from provisioning.app_installer import AppInstaller
from provisioning.ban_manager import BanManager
from provisioning.credentials import CredentialError, collect_password, user_exists
from provisioning.firewall_manager import FirewallManager
from provisioning.maintenance import MaintenanceConfigurator
from provisioning.package_manager import PackageManager
from provisioning.reporter import Reporter
from provisioning.run_state import DEFAULT_SSH_PORT, DEFAULT_USERNAME, HostPaths, RunContext, SetupOptions
from provisioning.ssh_manager import SSHManager
from provisioning.steps import Step, StepRunner
from provisioning.swap_manager import SwapManager
from provisioning.system_updates import SystemUpdater
from provisioning.user_manager import UserManager
from provisioning.validation import (
    ValidationError,
    build_options,
    check_debian_family,
    check_root,
    is_default_ssh_port,
)

LOGGER_NAME = "openclaw_setup"

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    PURPLE = '\033[0;35m'
    CYAN = '\033[0;36m'
    BOLD = '\033[1m'
    NC = '\033[0m'


class _ConsoleEchoFilter(logging.Filter):
    """Drop records the print helpers already showed on the terminal."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not getattr(record, "echoed", False)


class ServerSetup:
    """Main OpenClaw server provisioning orchestrator."""

    def __init__(self, paths: Optional[HostPaths] = None):
        """Initialize the provisioning run."""
        self.paths = paths or HostPaths()
        self.logger = logging.getLogger(LOGGER_NAME)
        self.options: Optional[SetupOptions] = None
        self.context: Optional[RunContext] = None
        self.runner: Optional[StepRunner] = None

        signal.signal(signal.SIGTERM, self._signal_handler)

    def _setup_logging(self, verbose: bool = False) -> None:
        """
        Attach the log file and console handlers.

        Called only after the password prompt, so interactive input is
        never interleaved with duplicated log output.
        """
        log_dir = self.paths.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        log_dir.chmod(0o700)

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.setLevel(logging.DEBUG)

        # Detailed file handler
        file_handler = logging.FileHandler(
            log_dir / f"setup-{int(datetime.now().timestamp())}.log"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        ))

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        console_handler.addFilter(_ConsoleEchoFilter())

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def _init_managers(self) -> None:
        self.system_updater = SystemUpdater(self.context, self.logger)
        self.swap_manager = SwapManager(self.context, self.logger)
        self.package_manager = PackageManager(self.context, self.logger)
        self.user_manager = UserManager(self.context, self.logger)
        self.ssh_manager = SSHManager(self.context, self.logger)
        self.firewall_manager = FirewallManager(self.context, self.logger)
        self.ban_manager = BanManager(self.context, self.logger)
        self.maintenance = MaintenanceConfigurator(self.context, self.logger)
        self.app_installer = AppInstaller(self.context, self.logger)
        self.reporter = Reporter(self.context, self.logger)

    def _signal_handler(self, signum: int, frame) -> None:
        """Handle termination signals."""
        self.print_warning(f"\nReceived signal {signum}. Stopping provisioning...")
        if self.context is not None:
            self.context.save_emergency_state("interrupted", f"Signal {signum}")
        sys.exit(130)

    def print_colored(self, color: str, message: str) -> None:
        """Print colored message to console."""
        print(f"{color}{message}{Colors.NC}")

    def print_success(self, message: str) -> None:
        self.print_colored(Colors.GREEN, f"✓ {message}")
        self.logger.info(f"SUCCESS: {message}", extra={"echoed": True})

    def print_warning(self, message: str) -> None:
        self.print_colored(Colors.YELLOW, f"⚠ {message}")
        self.logger.warning(message, extra={"echoed": True})

    def print_error(self, message: str) -> None:
        self.print_colored(Colors.RED, f"✗ {message}")
        self.logger.error(message, extra={"echoed": True})

    def print_info(self, message: str) -> None:
        self.print_colored(Colors.BLUE, f"ℹ {message}")
        self.logger.info(message, extra={"echoed": True})

    def print_header(self, message: str, level: int = 1) -> None:
        """Print formatted header."""
        if level == 1:
            separator = "=" * 49
            self.print_colored(Colors.BOLD, f"\n{separator}")
            self.print_colored(Colors.BOLD, f"{message.center(49)}")
            self.print_colored(Colors.BOLD, f"{separator}")
        else:
            self.print_colored(Colors.PURPLE, f"\n>>> {message}")

    def print_step(self, index: int, total: int, step: Step) -> None:
        self.print_colored(Colors.CYAN, f"[{index}/{total}] {step.description}...")
        self.logger.info(f"[{index}/{total}] {step.description}", extra={"echoed": True})

    def _print_step_failure(self, step: Step, message: str) -> None:
        self.print_error(message)

    def check_prerequisites(self, username: str, port: str) -> bool:
        """Validate privilege, OS family and flags before touching the host."""
        try:
            check_root()
            check_debian_family(self.paths.debian_version)
            self.options = build_options(username, port)
        except ValidationError as e:
            self.print_error(f"ERROR: {e.message}")
            if e.hint:
                self.print_info(e.hint)
            return False

        if is_default_ssh_port(self.options.ssh_port):
            self.print_warning("WARNING: You have chosen to keep SSH on Port 22.")
            self.print_warning("This port receives heavy automated bot traffic. Fail2Ban will protect you,")
            self.print_warning("but choosing a random port (like 2222 or 54321) is strongly recommended.")
            time.sleep(2)

        return True

    def collect_credentials(self) -> bool:
        """Prompt for the new account's password when the account is missing."""
        if user_exists(self.context.username):
            return True

        self.print_header(f"PLEASE CREATE A STRONG PASSWORD FOR THE '{self.context.username}' ACCOUNT", 2)
        self.print_info("This is required to run admin commands inside your server later.")

        try:
            self.context.password = collect_password()
        except CredentialError as e:
            self.print_error(f"ERROR: {e}")
            return False

        print()
        return True

    def _configure_firewall_and_bans(self) -> bool:
        if not self.firewall_manager.configure_firewall():
            return False
        return self.ban_manager.configure_ban_daemon()

    def build_steps(self) -> List[Step]:
        """The provisioning sequence; each step depends on the previous one succeeding."""
        username = self.context.username
        return [
            Step("system-updates", "Updating server packages",
                 self.system_updater.update_system),
            Step("swap", "Checking for active Swapfile (Memory Protection)",
                 self.swap_manager.ensure_swap),
            Step("dependencies", "Installing necessary dependencies",
                 self.package_manager.install_required_packages),
            Step("user", f"Creating non-root user ({username})",
                 self.user_manager.provision_user),
            # SSH must be on the new port before the firewall goes up
            Step("ssh-hardening", "Hardening SSH (Custom Port & Root Disabling)",
                 self.ssh_manager.harden_ssh),
            Step("firewall", "Configuring the UFW Firewall & Fail2Ban",
                 self._configure_firewall_and_bans),
            Step("maintenance", "Configuring Automatic Security Updates & NTP Time",
                 self.maintenance.configure),
            Step("openclaw", f"Installing & Setting Up OpenClaw as {username}",
                 self.app_installer.install),
        ]

    def execute_steps(self) -> bool:
        self.runner = StepRunner(
            self.build_steps(),
            self.context,
            self.logger,
            on_start=self.print_step,
            on_failure=self._print_step_failure
        )
        return self.runner.run()

    def show_report(self) -> None:
        """Print connection details and follow-up instructions."""
        self.print_header("Server Provisioning & OpenClaw Setup Complete!", 1)
        print("Your server is updated, fully firewalled, and running.")
        print("Fail2Ban is active to protect your login endpoints.")
        print()
        for line in self.reporter.connection_lines():
            print(line)

        for backup in self.context.backup_files:
            print(f"  Backup kept: {backup['original_path']} -> {backup['backup_path']}")

        follow_up = self.reporter.password_auth_lines(self.ssh_manager.disable_password_auth_command())
        if follow_up:
            self.print_header("SSH KEYS DETECTED - OPTIONAL SECURITY HARDENING", 1)
            for line in follow_up:
                print(line)
            self.print_warning("Only run this AFTER verifying key-based login works!")

        self.print_header("Rebooting", 1)
        for line in self.reporter.reconnect_lines():
            print(line)

    def show_stop_summary(self) -> None:
        """Print where the run stopped and what it had already changed."""
        if not self.context.emergency_states:
            return

        stop = self.context.emergency_states[-1]
        self.print_info(f"Stopped at: {stop['error_type']} ({stop['error_message']})")
        self.print_info(f"Completed steps: {', '.join(stop['completed_steps']) or 'none'}")
        self.print_info(f"SSH configuration state: {stop['ssh_state']}")
        for backup in self.context.backup_files:
            self.print_info(f"Backup kept: {backup['original_path']} -> {backup['backup_path']}")

    def main(self, args: argparse.Namespace) -> int:
        """Main execution function."""
        try:
            if not self.check_prerequisites(args.user, args.port):
                return 1

            self.context = RunContext(self.options, self.paths)
            self._init_managers()
            self.reporter.detect_server_ip()

            self.print_header("OpenClaw Automated Server Setup & Hardening", 1)

            # Must happen before log handlers start duplicating output
            if not self.collect_credentials():
                return 1

            self._setup_logging(args.verbose)

            if not self.execute_steps():
                self.print_error("Provisioning stopped before completion")
                self.show_stop_summary()
                return 1

            self.show_report()
            self.reporter.reboot()
            return 0

        except KeyboardInterrupt:
            self.print_warning("\nProvisioning interrupted by user")
            if self.context is not None:
                self.context.save_emergency_state("interrupted", "User interrupt")
            return 130


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = _ArgumentParser(
        description="OpenClaw Easy Server Setup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sudo openclaw-setup                      # user 'openclaw', SSH on 2222
  sudo openclaw-setup -u myadmin -p 8888   # custom user and SSH port
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'OpenClaw Server Setup v{__version__}'
    )

    parser.add_argument(
        '-u', '--user',
        default=DEFAULT_USERNAME,
        help=f'Name of the administrative user to create (default: {DEFAULT_USERNAME})'
    )

    parser.add_argument(
        '-p', '--port',
        default=str(DEFAULT_SSH_PORT),
        help=f'New SSH port (default: {DEFAULT_SSH_PORT})'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show debug output on the console'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup = ServerSetup()
    return setup.main(args)


if __name__ == "__main__":
    sys.exit(main())

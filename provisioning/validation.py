"""
Input Validation Module

Rejects a run before anything on the host is touched: privilege level,
OS family, account name shape and the choice of SSH port.

License: MIT
"""

import os
import re
from pathlib import Path
from typing import Optional

from .run_state import SetupOptions


USERNAME_PATTERN = re.compile(r"[a-z_][a-z0-9_-]{0,31}")
PORT_PATTERN = re.compile(r"[0-9]+")

STOCK_SSH_PORT = 22
MIN_PORT = 1
MAX_PORT = 65535

# Ports that are well-known services or already taken by OpenClaw itself
RESERVED_PORTS = {
    21: "FTP",
    23: "Telnet",
    53: "DNS",
    80: "HTTP",
    443: "HTTPS",
    3306: "MySQL",
    18789: "OpenClaw UI",
}


class ValidationError(Exception):
    """Raised when the invocation or host fails a precondition."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


def check_root() -> None:
    if os.geteuid() != 0:
        raise ValidationError(
            "Please run this script as root",
            hint="e.g. sudo openclaw-setup"
        )


def check_debian_family(marker: Path) -> None:
    """The run depends on apt, ufw and Debian paths."""
    if not Path(marker).exists():
        raise ValidationError("This script is designed specifically for Debian/Ubuntu systems")


def validate_username(username: str) -> str:
    if not USERNAME_PATTERN.fullmatch(username or ""):
        raise ValidationError(
            f"Invalid username '{username}'. Must be lowercase, start with a letter "
            "or underscore, and max 32 chars."
        )
    return username


def validate_port(value) -> int:
    """Parse and check an SSH port given on the command line."""
    text = str(value)
    if not PORT_PATTERN.fullmatch(text) or not MIN_PORT <= int(text) <= MAX_PORT:
        raise ValidationError(
            f"Invalid port number '{text}'. Must be a number between {MIN_PORT} and {MAX_PORT}."
        )

    port = int(text)
    if port in RESERVED_PORTS:
        raise ValidationError(
            f"Port {port} is strictly reserved or already in use ({RESERVED_PORTS[port]}).",
            hint="Please choose a different SSH port (e.g., 2222, 8888, 54321)."
        )
    return port


def is_default_ssh_port(port: int) -> bool:
    return port == STOCK_SSH_PORT


def build_options(username: str, port) -> SetupOptions:
    """Validate raw flag values into immutable run options."""
    return SetupOptions(username=validate_username(username), ssh_port=validate_port(port))

"""
Run State Module

Holds the in-memory state of a single provisioning run: the validated
invocation options, the host paths being touched, the collected credential
and the facts each stage hands to the next. Nothing here is persisted; the
only durable output of a run is the OS configuration it writes.

License: MIT
"""

import logging
import shutil
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


logger = logging.getLogger("openclaw_setup.state")

DEFAULT_USERNAME = "openclaw"
DEFAULT_SSH_PORT = 2222


class SSHState(Enum):
    """Lifecycle of the SSH daemon configuration during a run."""
    LEGACY = "legacy"
    HARDENED = "hardened"


@dataclass(frozen=True)
class SetupOptions:
    """Validated invocation parameters."""
    username: str = DEFAULT_USERNAME
    ssh_port: int = DEFAULT_SSH_PORT


@dataclass(frozen=True)
class HostPaths:
    """Filesystem locations a run reads or writes."""
    debian_version: Path = Path("/etc/debian_version")
    sshd_config: Path = Path("/etc/ssh/sshd_config")
    sshd_config_dir: Path = Path("/etc/ssh/sshd_config.d")
    home_root: Path = Path("/home")
    root_authorized_keys: Path = Path("/root/.ssh/authorized_keys")
    swapfile: Path = Path("/swapfile")
    fstab: Path = Path("/etc/fstab")
    fail2ban_jail: Path = Path("/etc/fail2ban/jail.local")
    sudoers_grant: Path = Path("/etc/sudoers.d/99-openclaw-temp")
    log_dir: Path = Path("/var/log/openclaw-setup")

    @classmethod
    def rooted_at(cls, root: Path) -> "HostPaths":
        """Rebase every default path under ``root`` (used for staging and tests)."""
        defaults = cls()
        rebased = {
            f.name: Path(root) / getattr(defaults, f.name).relative_to("/")
            for f in fields(cls)
        }
        return replace(defaults, **rebased)

    def home_of(self, username: str) -> Path:
        return self.home_root / username


@dataclass
class RunContext:
    """State passed explicitly through every provisioning step."""
    options: SetupOptions
    paths: HostPaths = field(default_factory=HostPaths)
    password: Optional[str] = field(default=None, repr=False)
    ssh_keys_detected: bool = False
    ssh_state: SSHState = SSHState.LEGACY
    ssh_service: str = "ssh"
    server_ip: str = "<server-ip>"
    completed_steps: List[str] = field(default_factory=list)
    backup_files: List[Dict[str, Any]] = field(default_factory=list)
    emergency_states: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def username(self) -> str:
        return self.options.username

    @property
    def ssh_port(self) -> int:
        return self.options.ssh_port

    def clear_password(self) -> None:
        """Drop the plaintext credential once the account has it."""
        self.password = None

    def mark_step_completed(self, step_name: str) -> None:
        if step_name not in self.completed_steps:
            self.completed_steps.append(step_name)
        logger.debug(f"Step completed: {step_name}")

    def record_backup_file(self, original_path: str, backup_path: str) -> None:
        self.backup_files.append({
            "original_path": original_path,
            "backup_path": backup_path,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    def create_backup_file(self, file_path: Path, suffix: str = ".bak") -> Path:
        """Copy a configuration file next to itself with ``suffix`` appended."""
        original_path = Path(file_path)

        if not original_path.exists():
            raise FileNotFoundError(f"File to backup does not exist: {file_path}")

        backup_path = original_path.with_name(original_path.name + suffix)
        shutil.copy2(original_path, backup_path)

        self.record_backup_file(str(original_path), str(backup_path))

        logger.info(f"Created backup: {original_path} -> {backup_path}")
        return backup_path

    def save_emergency_state(self, error_type: str, error_message: str) -> None:
        """Record why a run stopped; the orchestrator prints it on the failure path."""
        emergency_info = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error_type": error_type,
            "error_message": error_message,
            "completed_steps": list(self.completed_steps),
            "ssh_state": self.ssh_state.value
        }
        self.emergency_states.append(emergency_info)
        logger.debug(f"Run stopped ({error_type}): {error_message}")

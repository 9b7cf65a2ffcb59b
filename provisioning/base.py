"""
Command Execution Base

Shared command runner for every provisioning manager. Commands are passed
as argument lists, never through a shell, and their failures are logged and
reported back as a ``(success, output)`` pair.

License: MIT
"""

import logging
import os
import subprocess
from typing import Dict, List, Optional, Tuple

from .run_state import RunContext


APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class SystemManager:
    """Base class for managers that change the host through system commands."""

    def __init__(self, state: RunContext, logger: logging.Logger):
        self.state = state
        self.logger = logger

    def _build_env(self, env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not env:
            return None
        merged = dict(os.environ)
        merged.update(env)
        return merged

    def _run_command(
        self,
        command: List[str],
        check: bool = True,
        input_text: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None
    ) -> Tuple[bool, str]:
        """
        Run a command and return success status and output.

        With ``check`` set, a non-zero exit is logged as an error; without
        it the failure is only logged at debug level, for probes whose
        negative answer is expected.
        """
        self.logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                input=input_text,
                env=self._build_env(env),
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            self.logger.error(f"Command timed out: {' '.join(command)}")
            return False, "Command timed out"
        except OSError as e:
            self.logger.error(f"Could not run {command[0]}: {e}")
            return False, str(e)

        if result.returncode != 0:
            if check:
                self.logger.error(f"Command failed: {' '.join(command)}")
                self.logger.error(f"Error output: {result.stderr}")
            else:
                self.logger.debug(f"Command exited {result.returncode}: {' '.join(command)}")
            return False, result.stderr or result.stdout

        return True, result.stdout

    def _run_interactive(self, command: List[str], env: Optional[Dict[str, str]] = None) -> int:
        """Run a command attached to the current terminal and return its exit status."""
        self.logger.debug(f"Running interactively: {' '.join(command)}")
        try:
            result = subprocess.run(command, env=self._build_env(env))
        except OSError as e:
            self.logger.error(f"Could not run {command[0]}: {e}")
            return 127
        return result.returncode

"""
Test fixtures for the OpenClaw server setup.

Every test runs against a throwaway filesystem under ``tmp_path`` and a
fake ``subprocess.run`` that records commands instead of executing them.
"""

import logging
import subprocess
from typing import Dict, List, Tuple
from unittest.mock import patch

import pytest

from provisioning.run_state import HostPaths, RunContext, SetupOptions


class FakeSystem:
    """Stand-in for ``subprocess.run`` with canned answers per command prefix."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.inputs: Dict[Tuple[str, ...], str] = {}
        self.responses: Dict[Tuple[str, ...], Tuple[int, str, str]] = {}

    def respond(self, prefix, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[tuple(prefix)] = (returncode, stdout, stderr)

    def _lookup(self, command: List[str]) -> Tuple[int, str, str]:
        best = None
        for prefix, response in self.responses.items():
            if tuple(command[:len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best[0]):
                    best = (prefix, response)
        return best[1] if best else (0, "", "")

    def __call__(self, command, **kwargs):
        self.calls.append(list(command))
        if kwargs.get("input") is not None:
            self.inputs[tuple(command)] = kwargs["input"]
        returncode, stdout, stderr = self._lookup(list(command))
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)

    def ran(self, *prefix) -> bool:
        return any(call[:len(prefix)] == list(prefix) for call in self.calls)

    def index_of(self, *prefix) -> int:
        for index, call in enumerate(self.calls):
            if call[:len(prefix)] == list(prefix):
                return index
        raise ValueError(f"{prefix} was never run")


@pytest.fixture
def fake_system():
    system = FakeSystem()
    with patch("provisioning.base.subprocess.run", side_effect=system):
        yield system


@pytest.fixture
def host_paths(tmp_path) -> HostPaths:
    paths = HostPaths.rooted_at(tmp_path)
    paths.sshd_config.parent.mkdir(parents=True, exist_ok=True)
    paths.sshd_config.write_text("Include /etc/ssh/sshd_config.d/*.conf\nPort 22\n")
    paths.debian_version.write_text("12.5\n")
    paths.home_root.mkdir(parents=True, exist_ok=True)
    return paths


@pytest.fixture
def options() -> SetupOptions:
    return SetupOptions(username="openclaw", ssh_port=2222)


@pytest.fixture
def context(options, host_paths) -> RunContext:
    return RunContext(options, host_paths)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("openclaw_setup.tests")


@pytest.fixture
def no_such_user():
    with patch("provisioning.credentials.pwd.getpwnam", side_effect=KeyError("no such user")):
        yield


@pytest.fixture
def existing_user():
    with patch("provisioning.credentials.pwd.getpwnam", return_value=object()):
        yield

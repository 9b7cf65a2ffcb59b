"""
Application Installer Module

Installs OpenClaw as the provisioned user. The installer needs root for
its own dependencies (e.g. Node.js), so the user is given passwordless
sudo for the duration of the install only. The grant is removed when the
install finishes, whether it succeeded, failed or raised.

The installer script is downloaded to a file and run from there rather
than piped into bash, so its interactive prompts read the real terminal.

License: MIT
"""

import os
import tempfile
import urllib.error
import urllib.request
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .base import SystemManager


class AppInstaller(SystemManager):
    """Runs the remote OpenClaw installer under a temporary sudo grant."""

    INSTALL_URL = "https://openclaw.ai/install.sh"
    NPM_GLOBAL_DIR = ".npm-global"
    SHELL_RC = ".bashrc"
    DOWNLOAD_TIMEOUT = 60

    @contextmanager
    def temporary_sudo(self, username: str) -> Iterator[Path]:
        """Grant passwordless sudo to ``username`` until the block exits."""
        grant = self.state.paths.sudoers_grant
        grant.parent.mkdir(parents=True, exist_ok=True)
        grant.write_text(f"{username} ALL=(ALL) NOPASSWD:ALL\n")
        grant.chmod(0o440)
        self.logger.info("Temporary passwordless sudo granted")
        try:
            yield grant
        finally:
            grant.unlink(missing_ok=True)
            self.logger.info("Temporary passwordless sudo revoked")

    def prepare_npm_path(self, username: str) -> Path:
        """Pre-create the npm global bin dir so the installer finds it on PATH."""
        npm_root = self.state.paths.home_of(username) / self.NPM_GLOBAL_DIR
        bin_dir = npm_root / "bin"
        bin_dir.mkdir(parents=True, exist_ok=True)
        self._run_command(["chown", "-R", f"{username}:{username}", str(npm_root)])
        return bin_dir

    def persist_path(self, username: str, bin_dir: Path) -> None:
        """Add ``bin_dir`` to the user's PATH for future login sessions, once."""
        shell_rc = self.state.paths.home_of(username) / self.SHELL_RC
        content = shell_rc.read_text() if shell_rc.exists() else ""

        if str(bin_dir) in content:
            return

        with open(shell_rc, 'a') as f:
            if content and not content.endswith("\n"):
                f.write("\n")
            f.write(f'export PATH="{bin_dir}:$PATH"\n')
        self._run_command(["chown", f"{username}:{username}", str(shell_rc)])

    def download_installer(self, destination: Path) -> bool:
        """Download the installer script over HTTPS."""
        try:
            self.logger.info(f"Downloading: {self.INSTALL_URL}")

            with urllib.request.urlopen(self.INSTALL_URL, timeout=self.DOWNLOAD_TIMEOUT) as response:
                content = response.read()

            with open(destination, 'wb') as f:
                f.write(content)

            # Readable and executable by the unprivileged user
            destination.chmod(0o755)
            return True

        except (urllib.error.URLError, OSError) as e:
            self.logger.warning(f"Failed to download {self.INSTALL_URL}: {e}")
            return False

    def run_installer(self, username: str, script: Path, bin_dir: Path) -> int:
        # sudo -u keeps the controlling terminal; su - would start a session without one
        return self._run_interactive([
            "sudo", "-u", username, "-i", "bash", "-c",
            f'export PATH="{bin_dir}:$PATH" && bash {script}'
        ])

    def install(self) -> bool:
        """
        Install OpenClaw as the provisioned user.

        A failing installer is tolerated: the hardening already applied is
        unaffected, so the step still succeeds and only a warning is logged.
        """
        username = self.state.username

        with self.temporary_sudo(username):
            bin_dir = self.prepare_npm_path(username)
            self.persist_path(username, bin_dir)

            fd, script_name = tempfile.mkstemp(prefix="openclaw-install-", suffix=".sh")
            os.close(fd)
            script = Path(script_name)
            try:
                if self.download_installer(script):
                    status = self.run_installer(username, script, bin_dir)
                    if status != 0:
                        self.logger.warning(f"OpenClaw installer exited with status {status}")
                    else:
                        self.logger.info("OpenClaw installer finished")
                else:
                    self.logger.warning("Skipping OpenClaw installer")
            finally:
                script.unlink(missing_ok=True)

        return True

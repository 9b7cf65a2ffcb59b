from pathlib import Path
from unittest.mock import patch

import pytest

from provisioning.app_installer import AppInstaller


@pytest.fixture
def installer(context, logger, fake_system):
    context.paths.home_of("openclaw").mkdir()
    return AppInstaller(context, logger)


def _fake_download(installer, succeed=True):
    def download(destination: Path) -> bool:
        destination.write_text("#!/bin/bash\necho installing\n")
        return succeed
    return patch.object(installer, "download_installer", side_effect=download)


def test_grant_exists_only_during_install(installer, context, fake_system):
    grant = context.paths.sudoers_grant
    seen = {}

    def run_installer(command, **kwargs):
        if command[0] == "sudo":
            seen["grant"] = grant.read_text()
            seen["mode"] = grant.stat().st_mode & 0o777
        return fake_system(command, **kwargs)

    with _fake_download(installer), patch("provisioning.base.subprocess.run", side_effect=run_installer):
        assert installer.install()

    assert seen == {"grant": "openclaw ALL=(ALL) NOPASSWD:ALL\n", "mode": 0o440}
    assert not grant.exists()


def test_installer_failure_is_tolerated_and_grant_revoked(installer, context, fake_system):
    fake_system.respond(["sudo", "-u", "openclaw"], returncode=1)

    with _fake_download(installer):
        assert installer.install()

    assert fake_system.ran("sudo", "-u", "openclaw", "-i", "bash", "-c")
    assert not context.paths.sudoers_grant.exists()


def test_download_failure_is_tolerated(installer, context, fake_system):
    with _fake_download(installer, succeed=False):
        assert installer.install()

    assert not fake_system.ran("sudo")
    assert not context.paths.sudoers_grant.exists()


def test_grant_revoked_when_install_raises(installer, context):
    with patch.object(installer, "prepare_npm_path", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            installer.install()

    assert not context.paths.sudoers_grant.exists()


def test_installer_runs_from_file_with_npm_path(installer, context, fake_system):
    with _fake_download(installer):
        installer.install()

    command = fake_system.calls[fake_system.index_of("sudo", "-u", "openclaw")]
    bin_dir = context.paths.home_of("openclaw") / ".npm-global" / "bin"
    assert f'export PATH="{bin_dir}:$PATH"' in command[-1]
    assert command[-1].split()[-1].endswith(".sh")
    assert not Path(command[-1].split()[-1]).exists()


def test_path_is_persisted_once(installer, context, fake_system):
    bashrc = context.paths.home_of("openclaw") / ".bashrc"
    bashrc.write_text("alias ll='ls -l'")

    with _fake_download(installer):
        installer.install()
        installer.install()

    bin_dir = context.paths.home_of("openclaw") / ".npm-global" / "bin"
    assert bin_dir.is_dir()
    assert bashrc.read_text() == f"alias ll='ls -l'\nexport PATH=\"{bin_dir}:$PATH\"\n"

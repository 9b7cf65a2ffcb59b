from unittest.mock import patch

import pytest

from provisioning.run_state import SSHState
from provisioning.ssh_manager import DROPIN_NAME, SSHManager, render_sshd_dropin
from provisioning.steps import Step, StepRunner


@pytest.fixture
def ssh_manager(context, logger, fake_system):
    fake_system.respond(["systemctl", "list-unit-files", "ssh.service"], stdout="ssh.service enabled enabled\n")
    fake_system.respond(["systemctl", "is-enabled", "ssh.socket"], returncode=1, stdout="disabled\n")
    return SSHManager(context, logger)


def test_render_dropin_contains_hardened_directives():
    content = render_sshd_dropin("admin", 8888)
    lines = content.splitlines()

    assert "Port 8888" in lines
    assert "PermitRootLogin no" in lines
    assert "PasswordAuthentication yes" in lines
    assert "PermitEmptyPasswords no" in lines
    assert "AllowUsers admin" in lines
    assert "LoginGraceTime 30" in lines
    assert "MaxAuthTries 3" in lines
    assert any(line.startswith("Ciphers chacha20-poly1305@openssh.com,") for line in lines)
    assert any(line.startswith("MACs hmac-sha2-512-etm@openssh.com,") for line in lines)


def test_dropin_sorts_before_distribution_overrides():
    assert DROPIN_NAME < "50-cloud-init.conf"


def test_successful_transition(ssh_manager, context, fake_system):
    result = ssh_manager.harden_ssh()

    assert result.success
    assert context.ssh_state is SSHState.HARDENED
    assert context.ssh_service == "ssh"
    assert ssh_manager.dropin_path.read_text() == render_sshd_dropin("openclaw", 2222)
    assert fake_system.index_of("sshd", "-t") < fake_system.index_of("systemctl", "restart", "ssh")


def test_backs_up_base_config(ssh_manager, context):
    ssh_manager.harden_ssh()

    backup = context.paths.sshd_config.with_name("sshd_config.bak")
    assert backup.read_text() == context.paths.sshd_config.read_text()
    assert context.backup_files[0]["backup_path"] == str(backup)


def test_missing_base_config_is_not_fatal(ssh_manager, context):
    context.paths.sshd_config.unlink()

    assert ssh_manager.harden_ssh().success


def test_invalid_config_is_discarded_without_restart(ssh_manager, context, logger, fake_system):
    fake_system.respond(["sshd", "-t"], returncode=255, stderr="line 3: Bad configuration option")

    runner = StepRunner([Step("ssh-hardening", "Hardening SSH", ssh_manager.harden_ssh)], context, logger)

    assert not runner.run()
    assert not ssh_manager.dropin_path.exists()
    assert context.ssh_state is SSHState.LEGACY
    assert not fake_system.ran("systemctl", "restart")


def test_partially_written_dropin_is_discarded(ssh_manager, context, logger, fake_system):
    runner = StepRunner([Step("ssh-hardening", "Hardening SSH", ssh_manager.harden_ssh)], context, logger)

    with patch("pathlib.Path.chmod", side_effect=PermissionError("Operation not permitted")):
        assert not runner.run()

    assert not ssh_manager.dropin_path.exists()
    assert context.ssh_state is SSHState.LEGACY
    assert not fake_system.ran("sshd", "-t")
    assert not fake_system.ran("systemctl", "restart")


def test_falls_back_to_sshd_unit(context, logger, fake_system):
    fake_system.respond(["systemctl", "list-unit-files", "ssh.service"], returncode=1, stdout="0 unit files listed.\n")
    manager = SSHManager(context, logger)

    assert manager.harden_ssh().success
    assert fake_system.ran("systemctl", "restart", "sshd")


def test_restarts_socket_when_socket_activated(ssh_manager, fake_system):
    fake_system.respond(["systemctl", "is-enabled", "ssh.socket"], stdout="enabled\n")

    assert ssh_manager.harden_ssh().success
    assert fake_system.index_of("systemctl", "daemon-reload") < fake_system.index_of("systemctl", "restart", "ssh.socket")
    assert fake_system.index_of("systemctl", "restart", "ssh.socket") < fake_system.index_of("systemctl", "restart", "ssh")


def test_restart_failure_keeps_legacy_state(ssh_manager, context, fake_system):
    fake_system.respond(["systemctl", "restart", "ssh"], returncode=1, stderr="Job failed")

    result = ssh_manager.harden_ssh()

    assert not result.success
    assert result.compensate is None
    assert context.ssh_state is SSHState.LEGACY


def test_detects_user_keys(ssh_manager, context):
    keys = context.paths.home_of("openclaw") / ".ssh" / "authorized_keys"
    keys.parent.mkdir(parents=True)
    keys.write_text("ssh-ed25519 AAAA operator\n")

    ssh_manager.harden_ssh()

    assert context.ssh_keys_detected
    assert "PasswordAuthentication yes" in ssh_manager.dropin_path.read_text()


def test_empty_key_file_is_not_detected(ssh_manager, context):
    keys = context.paths.home_of("openclaw") / ".ssh" / "authorized_keys"
    keys.parent.mkdir(parents=True)
    keys.write_text("")

    ssh_manager.harden_ssh()

    assert not context.ssh_keys_detected


def test_disable_password_auth_command(ssh_manager, context):
    ssh_manager.harden_ssh()

    command = ssh_manager.disable_password_auth_command()
    assert str(ssh_manager.dropin_path) in command
    assert "PasswordAuthentication no" in command
    assert command.endswith("sudo systemctl restart ssh")

import pytest

from provisioning.user_manager import UserManager


@pytest.fixture
def user_manager(context, logger, fake_system):
    return UserManager(context, logger)


def test_existing_user_is_left_alone(user_manager, context, fake_system, existing_user):
    context.password = None

    assert user_manager.provision_user()
    assert fake_system.calls == []


def test_creates_user_with_password_and_group(user_manager, context, fake_system, no_such_user):
    context.password = "s3cret"

    assert user_manager.provision_user()

    assert fake_system.calls[0] == ["adduser", "--disabled-password", "--gecos", "", "openclaw"]
    assert fake_system.inputs[("chpasswd",)] == "openclaw:s3cret\n"
    assert all("s3cret" not in " ".join(call) for call in fake_system.calls)
    assert fake_system.ran("usermod", "-aG", "sudo", "openclaw")
    assert context.password is None


def test_password_cleared_even_when_chpasswd_fails(user_manager, context, fake_system, no_such_user):
    context.password = "s3cret"
    fake_system.respond(["chpasswd"], returncode=1, stderr="chpasswd: error")

    assert not user_manager.provision_user()
    assert context.password is None
    assert not fake_system.ran("usermod")


def test_new_user_without_password_fails(user_manager, context, fake_system, no_such_user):
    assert not user_manager.provision_user()
    assert fake_system.calls == []


def test_copies_root_keys(user_manager, context, fake_system, no_such_user):
    context.password = "s3cret"
    root_keys = context.paths.root_authorized_keys
    root_keys.parent.mkdir(parents=True)
    root_keys.write_text("ssh-ed25519 AAAA operator\n")
    (context.paths.home_of("openclaw")).mkdir()

    assert user_manager.provision_user()

    ssh_dir = context.paths.home_of("openclaw") / ".ssh"
    copied = ssh_dir / "authorized_keys"
    assert copied.read_text() == "ssh-ed25519 AAAA operator\n"
    assert ssh_dir.stat().st_mode & 0o777 == 0o700
    assert copied.stat().st_mode & 0o777 == 0o600
    assert fake_system.ran("chown", "-R", "openclaw:openclaw", str(ssh_dir))


def test_empty_root_keys_are_not_copied(user_manager, context, fake_system, no_such_user):
    context.password = "s3cret"
    root_keys = context.paths.root_authorized_keys
    root_keys.parent.mkdir(parents=True)
    root_keys.write_text("")

    assert user_manager.provision_user()
    assert not (context.paths.home_of("openclaw") / ".ssh").exists()

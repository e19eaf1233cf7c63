"""Teardown behaviour shared by every backend."""

import pytest

from archsetup.backends import select_backend
from archsetup.lib.storage import plan_layout


@pytest.fixture(params=["ext4", "lvm-luks", "zfs"])
def backend(request, make_config, paths):
    cfg = make_config(filesystem=request.param)
    return select_backend(cfg, plan_layout(cfg.device), paths)


def test_double_teardown_after_install(backend, fake_system):
    backend.format_and_mount_root("/dev/sda3")

    backend.teardown()
    backend.teardown()

    assert fake_system.mounted == {}
    assert fake_system.imported == set()
    assert fake_system.mappers == set()


def test_teardown_on_untouched_system(backend, fake_system):
    backend.teardown()
    backend.teardown()

    assert not fake_system.ran("umount")


def test_clean_is_repeatable(backend, fake_system):
    backend.format_and_mount_root("/dev/sda3")

    backend.clean()
    backend.clean()

    assert fake_system.mounted == {}


def test_clean_swallows_tool_failures(backend, fake_system, caplog):
    backend.format_and_mount_root("/dev/sda3")
    fake_system.fail("umount", rc=32, stderr="target is busy")

    backend.clean()

    assert "Ignoring failure" in caplog.text

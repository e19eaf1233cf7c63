"""Tests for backends/zfs.py - pool, datasets, export/re-import, cache file."""

from pathlib import Path

import pytest

from archsetup.backends import ZfsBackend, select_backend
from archsetup.backends.zfs import ZfsState
from archsetup.errors import DependencyError, FormatError
from archsetup.lib.storage import plan_layout


@pytest.fixture
def backend(make_config, paths):
    cfg = make_config(filesystem="zfs")
    return select_backend(cfg, plan_layout(cfg.device), paths)


class TestDependencies:
    def test_loads_module(self, backend, fake_system):
        backend.check_dependencies()

        assert fake_system.ran("modprobe", "zfs")

    def test_missing_module(self, backend, fake_system):
        fake_system.fail("modprobe", "zfs", rc=1, stderr="Module zfs not found")

        with pytest.raises(DependencyError, match="zfs"):
            backend.check_dependencies()

    def test_missing_tool(self, backend, fake_system, monkeypatch):
        monkeypatch.setattr("archsetup.backends.base.shutil.which", lambda tool: None)

        with pytest.raises(DependencyError, match="zpool"):
            backend.check_dependencies()


class TestFormatAndMountRoot:
    def test_full_sequence(self, backend, fake_system, paths):
        backend.format_and_mount_root("/dev/sda3")

        assert isinstance(backend, ZfsBackend)
        assert backend.state is ZfsState.BOOT_MOUNTED
        order = [
            fake_system.index("zpool", "create", "-f", "zroot", "-m", "none", "/dev/sda3"),
            fake_system.index("zfs", "create", "-p", "-o", "atime=off"),
            fake_system.index("zfs", "unmount", "-a"),
            fake_system.index("zpool", "set", "bootfs=zroot/ROOT", "zroot"),
            fake_system.index("zpool", "export", "zroot"),
            fake_system.index("zpool", "import", "-l", "-d", "/dev/disk/by-id", "-R", paths.target_root, "zroot"),
            fake_system.index("zpool", "set", f"cachefile={paths.host_zpool_cache}", "zroot"),
            fake_system.index("mount", "/dev/sda1", paths.target("boot")),
        ]
        assert -1 not in order
        assert order == sorted(order)

    def test_datasets_created(self, backend, fake_system):
        backend.format_and_mount_root("/dev/sda3")

        datasets = fake_system.pools["zroot"]
        for d in backend.expected_datasets():
            assert d in datasets
        assert "zroot/ROOT/var/log/journal" in datasets
        assert "zroot/secrets" in datasets

    def test_root_and_secrets_are_encrypted_with_passphrase(self, backend, fake_system):
        backend.format_and_mount_root("/dev/sda3")

        root_create = fake_system.calls[fake_system.index("zfs", "create", "-p", "-o", "atime=off")]
        assert "encryption=on" in root_create
        assert root_create[-1] == "zroot/ROOT"
        assert fake_system.input_for("zfs", "create", "-p", "-o", "atime=off") == "correct horse battery staple\n"

        secrets = [c for c in fake_system.calls if c[:2] == ["zfs", "create"] and c[-1] == "zroot/secrets"][0]
        assert "canmount=noauto" in secrets
        assert "encryption=on" in secrets

    def test_journal_gets_posix_acls(self, backend, fake_system):
        backend.format_and_mount_root("/dev/sda3")

        assert fake_system.ran("zfs", "set", "acltype=posixacl", "zroot/ROOT/var/log/journal")
        assert fake_system.ran("zfs", "set", "xattr=sa", "zroot/ROOT/var/log/journal")

    def test_import_unlocks_both_encryption_roots(self, backend, fake_system):
        backend.format_and_mount_root("/dev/sda3")

        key = "correct horse battery staple\n"
        assert fake_system.input_for("zpool", "import", "-l") == key * 2

    def test_cache_file_copied_into_target(self, backend, fake_system, paths):
        backend.format_and_mount_root("/dev/sda3")

        copied = Path(paths.target("etc/zfs/zpool.cache"))
        assert copied.read_bytes() == Path(paths.host_zpool_cache).read_bytes()

    def test_unmounted_child_dataset_is_tolerated(self, backend, fake_system):
        fake_system.unmountable.add("zroot/ROOT/var/log")

        backend.format_and_mount_root("/dev/sda3")

        assert backend.state is ZfsState.BOOT_MOUNTED

    def test_dataset_create_failure_is_fatal(self, backend, fake_system):
        fake_system.fail("zfs", "create", "-p", "-o", "mountpoint=/docker", rc=1, stderr="out of space")

        with pytest.raises(FormatError):
            backend.format_and_mount_root("/dev/sda3")
        assert backend.state is ZfsState.POOL_CREATED

    def test_pool_create_failure(self, backend, fake_system):
        fake_system.fail("zpool", "create", rc=1, stderr="device in use")

        with pytest.raises(FormatError, match="UNINITIALIZED"):
            backend.format_and_mount_root("/dev/sda3")


def test_states_only_move_forward(backend):
    backend._advance(ZfsState.POOL_CREATED)

    with pytest.raises(Exception, match="cannot go"):
        backend._advance(ZfsState.POOL_CREATED)


def test_fstab_holds_only_the_esp(backend, fake_system, paths):
    backend.format_and_mount_root("/dev/sda3")

    backend.generate_fstab("/dev/sda1", "/dev/sda3")

    text = Path(paths.target("etc/fstab")).read_text()
    assert "/boot" in text
    assert "zfs" not in text


def test_hooks_put_zfs_before_filesystems(backend):
    hooks = backend.initramfs_hooks()

    assert hooks.index("keyboard") < hooks.index("zfs") < hooks.index("filesystems")
    assert "fsck" not in hooks


def test_extra_packages_add_archzfs(backend, fake_system, paths):
    Path(paths.target("etc")).mkdir(parents=True)
    Path(paths.target("etc/pacman.conf")).write_text("[core]\nInclude = /etc/pacman.d/mirrorlist\n")

    backend.install_extra_packages()
    backend.install_extra_packages()

    conf = Path(paths.target("etc/pacman.conf")).read_text()
    assert conf.count("[archzfs]") == 1
    assert "Server = https://archzfs.com/$repo/x86_64" in conf
    assert fake_system.ran("arch-chroot", paths.target_root, "pacman-key", "--recv-keys", "F75D9D76")
    assert fake_system.ran("arch-chroot", paths.target_root, "pacman-key", "--lsign-key", "F75D9D76")
    assert fake_system.ran(
        "arch-chroot", paths.target_root, "pacman", "-Sy", "--needed", "--noconfirm", "zfs-linux", "zfs-linux-lts"
    )


def test_boot_options_and_first_boot_script(backend):
    assert backend.extra_boot_options() == "zfs=zroot rw"

    script = backend.first_boot_script()
    assert script.startswith("#!/bin/bash")
    assert "sudo zpool set cachefile=/etc/zfs/zpool.cache zroot" in script
    assert "sudo mkinitcpio -p linux\nsudo mkinitcpio -p linux-lts" in script


def test_teardown_exports_pool(backend, fake_system, paths):
    backend.format_and_mount_root("/dev/sda3")

    backend.teardown()

    assert "zroot" not in fake_system.imported
    assert fake_system.mounted == {}


class TestClean:
    def test_destroys_leftover_pool(self, backend, fake_system):
        fake_system.pools["zroot"] = {"zroot", "zroot/ROOT"}

        backend.clean()

        assert fake_system.ran("zpool", "import", "-N", "-f", "zroot")
        assert fake_system.ran("zpool", "destroy", "-f", "zroot")
        assert "zroot" not in fake_system.pools

    def test_nothing_to_clean_is_not_an_error(self, backend, fake_system):
        backend.clean()

        assert fake_system.ran("zpool", "destroy", "-f", "zroot")
        assert fake_system.pools == {}

    def test_then_fresh_install_recreates_pool(self, backend, fake_system):
        fake_system.pools["zroot"] = {"zroot", "zroot/stale"}

        backend.clean()
        backend.format_and_mount_root("/dev/sda3")

        assert "zroot/stale" not in fake_system.pools["zroot"]
        assert backend.state is ZfsState.BOOT_MOUNTED

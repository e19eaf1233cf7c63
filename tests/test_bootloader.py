"""Tests for lib/bootloader.py."""

from archsetup.lib.bootloader import entry_for_kernel, install_systemd_boot, write_loader_entries


class TestEntryForKernel:
    def test_mainline(self):
        e = entry_for_kernel("linux", "zfs=zroot rw")

        assert e.entry_id == "arch"
        assert e.title == "Arch Linux"
        assert e.render() == (
            "title    Arch Linux\n"
            "linux    /vmlinuz-linux\n"
            "initrd   /initramfs-linux.img\n"
            "options  zfs=zroot rw\n"
        )

    def test_lts(self):
        e = entry_for_kernel("linux-lts", "rw")

        assert e.entry_id == "arch-lts"
        assert e.title == "Arch Linux LTS"
        assert e.linux == "/vmlinuz-linux-lts"
        assert e.initrd == "/initramfs-linux-lts.img"


def test_write_loader_entries(tmp_path):
    write_loader_entries(target_root=str(tmp_path), kernels=["linux", "linux-lts"], options="root=PARTUUID=x rw", timeout=5)

    loader = tmp_path / "boot/loader"
    assert (loader / "loader.conf").read_text() == "default arch\ntimeout 5\n"
    assert "options  root=PARTUUID=x rw" in (loader / "entries/arch.conf").read_text()
    assert "Arch Linux LTS" in (loader / "entries/arch-lts.conf").read_text()


def test_install_systemd_boot_runs_bootctl(fake_system, paths):
    install_systemd_boot(target_root=paths.target_root)

    assert fake_system.calls == [["arch-chroot", paths.target_root, "bootctl", "install"]]

"""Tests for lib/initramfs.py."""

from pathlib import Path

from archsetup.lib.initramfs import render_hooks, splice_hooks, write_hooks

STOCK_CONF = """MODULES=()
BINARIES=()
# HOOKS comment stays
HOOKS=(base udev autodetect modconf block filesystems keyboard fsck)
COMPRESSION="zstd"
"""


def test_render_hooks():
    assert render_hooks(["base", "udev"]) == "HOOKS=(base udev)"


class TestSpliceHooks:
    def test_replaces_only_the_hooks_line(self):
        out = splice_hooks(STOCK_CONF, ["base", "udev", "zfs", "filesystems"])

        assert "HOOKS=(base udev zfs filesystems)\n" in out
        assert "# HOOKS comment stays" in out
        assert 'COMPRESSION="zstd"' in out
        assert out.count("HOOKS=(") == 1

    def test_appends_when_missing(self):
        assert splice_hooks("MODULES=()", ["base"]) == "MODULES=()\nHOOKS=(base)\n"


class TestWriteHooks:
    def test_empty_list_leaves_file_alone(self, tmp_path):
        conf = tmp_path / "etc/mkinitcpio.conf"
        conf.parent.mkdir(parents=True)
        conf.write_text(STOCK_CONF)

        assert write_hooks(str(tmp_path), []) is False
        assert conf.read_text() == STOCK_CONF

    def test_writes_hooks(self, tmp_path):
        conf = tmp_path / "etc/mkinitcpio.conf"
        conf.parent.mkdir(parents=True)
        conf.write_text(STOCK_CONF)

        assert write_hooks(str(tmp_path), ["base", "encrypt", "lvm2"]) is True
        assert "HOOKS=(base encrypt lvm2)" in conf.read_text()

    def test_dry_run_does_not_touch_disk(self, tmp_path):
        assert write_hooks(str(tmp_path), ["base"], dry_run=True) is True
        assert not Path(tmp_path, "etc/mkinitcpio.conf").exists()

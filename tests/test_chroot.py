"""
Tests for in-target execution and unmount settling.
"""
import pytest

from zfs_convert.errors import CommandError
from zfs_convert.lib import chroot, mounts


def test_execute_in_target_wraps_chroot(fake_runner, monkeypatch):
    monkeypatch.setattr(chroot, "run_cmd", fake_runner)

    rc = chroot.execute_in_target("/mnt", ["apt-get", "update"])

    assert rc == 0
    assert fake_runner.calls == [["chroot", "/mnt", "apt-get", "update"]]
    assert fake_runner.envs[0]["DEBIAN_FRONTEND"] == "noninteractive"


def test_execute_in_target_failure_propagates(fake_runner, monkeypatch):
    fake_runner.respond(["chroot", "/mnt", "apt-get"], 100)
    monkeypatch.setattr(chroot, "run_cmd", fake_runner)

    with pytest.raises(CommandError) as exc:
        chroot.execute_in_target("/mnt", ["apt-get", "install", "-y", "zfs-dkms"])
    assert exc.value.returncode == 100


def test_execute_in_target_tolerated_mode_returns_status(fake_runner, monkeypatch):
    fake_runner.respond(["chroot", "/mnt", "apt-get"], 100)
    monkeypatch.setattr(chroot, "run_cmd", fake_runner)

    assert chroot.execute_in_target("/mnt", ["apt-get", "purge", "-y", "os-prober"], check=False) == 100


def test_mount_chroot_binds(fake_runner, monkeypatch, tmp_path):
    monkeypatch.setattr(chroot, "run_cmd", fake_runner)

    chroot.mount_chroot_binds(str(tmp_path))

    assert [c[-2] for c in fake_runner.calls] == ["/proc", "/sys", "/dev"]
    assert all((tmp_path / d).is_dir() for d in chroot.VIRTUAL_FS_DIRS)


def test_copy_host_resolv_conf_skips_regular_file(tmp_path):
    (tmp_path / "etc").mkdir()
    (tmp_path / "etc/resolv.conf").write_text("nameserver 192.0.2.1\n")

    chroot.copy_host_resolv_conf(str(tmp_path))

    assert (tmp_path / "etc/resolv.conf").read_text() == "nameserver 192.0.2.1\n"


@pytest.fixture
def mount_table(monkeypatch, fake_runner, immediate_wait):
    mounted = set()
    forced = []

    def umount(argv):
        forced.append(argv[-1])
        return 0, ""

    fake_runner.respond_with(["mountpoint", "-q"], lambda argv: (0 if argv[-1] in mounted else 32, ""))
    fake_runner.respond_with(["umount"], umount)
    monkeypatch.setattr(mounts, "run_cmd", fake_runner)
    monkeypatch.setattr(mounts, "wait_until", immediate_wait)
    return mounted, forced


def test_unmount_settles_without_escalation(mount_table):
    mounted, forced = mount_table

    assert mounts.unmount_virtual_filesystems("/mnt") == []
    assert forced == ["/mnt/dev", "/mnt/sys", "/mnt/proc"]


def test_unmount_escalates_once_and_reports_leftovers(mount_table):
    mounted, forced = mount_table
    mounted.add("/mnt/sys")

    still = mounts.unmount_and_settle(["/mnt/dev", "/mnt/sys"])

    assert still == ["/mnt/sys"]
    assert forced == ["/mnt/dev", "/mnt/sys", "/mnt/sys"]


def test_unmount_dry_run_never_checks(mount_table, fake_runner):
    mounts.unmount_and_settle(["/mnt/dev"], dry_run=True)
    assert not fake_runner.commands("mountpoint")

from zfs_convert.lib import chroot, pkg


def test_purge_failure_is_tolerated(fake_runner, monkeypatch):
    fake_runner.respond(["chroot", "/mnt", "apt-get", "purge"], 100)
    monkeypatch.setattr(chroot, "run_cmd", fake_runner)

    assert pkg.apt_purge("/mnt", ["cryptsetup*"]) is False
    assert fake_runner.calls == [["chroot", "/mnt", "apt-get", "purge", "--yes", "cryptsetup*"]]


def test_debconf_selection_goes_to_stdin(fake_runner, monkeypatch):
    monkeypatch.setattr(chroot, "run_cmd", fake_runner)

    pkg.debconf_set("/mnt", pkg.ZFS_DKMS_LICENSE_NOTE)

    assert fake_runner.calls == [["chroot", "/mnt", "debconf-set-selections"]]
    assert fake_runner.inputs == [pkg.ZFS_DKMS_LICENSE_NOTE]


def test_host_install_from_backports(fake_runner, monkeypatch):
    monkeypatch.setattr(pkg, "run_cmd", fake_runner)

    ok = pkg.host_apt_install(["zfs-dkms"], release="bookworm-backports", extra_args=["--no-upgrade"])

    assert ok
    assert fake_runner.calls == [["apt-get", "install", "--yes", "-t", "bookworm-backports", "--no-upgrade", "zfs-dkms"]]


def test_sources_list_has_all_suites():
    text = pkg.render_sources_list(
        "bookworm", packages_repo="https://deb.debian.org/debian", security_repo="https://deb.debian.org/debian-security"
    )
    suites = [line.split()[2] for line in text.splitlines()]
    assert suites == ["bookworm", "bookworm-backports", "bookworm-updates", "bookworm-security"]

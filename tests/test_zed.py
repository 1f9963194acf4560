"""
Tests for the ZED-driven zfs-list cache bootstrap.
"""
from unittest import mock

import pytest

from zfs_convert.errors import SettleTimeoutError
from zfs_convert.lib import zed


@pytest.fixture
def target(tmp_path):
    root = tmp_path / "mnt"
    (root / "etc/zfs/zfs-list.cache").mkdir(parents=True)
    return root


@pytest.fixture
def fake_zed(monkeypatch):
    in_target = []
    proc = mock.Mock()
    monkeypatch.setattr(zed, "execute_in_target", lambda root, argv, **kw: in_target.append(list(argv)) or 0)
    monkeypatch.setattr(zed, "start_background", mock.Mock(return_value=proc))
    return in_target, proc


def test_strip_mount_prefix(tmp_path):
    cache = tmp_path / "rpool"
    cache.write_text("rpool/ROOT/debian\t/mnt\ton\nbpool/BOOT/debian\t/mnt/boot\ton\n")

    zed.strip_mount_prefix(cache, "/mnt")

    assert cache.read_text() == "rpool/ROOT/debian\t/\ton\nbpool/BOOT/debian\t/boot\ton\n"


def test_cache_already_populated(target, fake_zed):
    in_target, proc = fake_zed
    cache = zed.cache_file(str(target), "rpool")
    cache.write_text(f"rpool/ROOT/debian\t{target}\ton\n")

    zed.populate_zfs_list_cache(target_root=str(target), rpool="rpool")

    assert ["zfs", "set", "canmount=noauto", "rpool"] not in in_target
    assert cache.read_text() == "rpool/ROOT/debian\t/\ton\n"
    proc.terminate.assert_called_once()


def test_property_change_triggers_population(target, fake_zed, monkeypatch):
    in_target, proc = fake_zed
    cache = zed.cache_file(str(target), "rpool")

    def fake_wait(predicate, timeout_s, interval_s):
        assert timeout_s == zed.CACHE_TIMEOUT_S
        cache.write_text(f"rpool/ROOT/debian\t{target}/\ton\n")
        return predicate()

    monkeypatch.setattr(zed, "wait_until", fake_wait)

    zed.populate_zfs_list_cache(target_root=str(target), rpool="rpool")

    assert ["zfs", "set", "canmount=noauto", "rpool"] in in_target
    assert str(target) not in cache.read_text()


def test_cache_timeout_is_fatal_and_names_zed(target, fake_zed, monkeypatch):
    _, proc = fake_zed
    monkeypatch.setattr(zed, "wait_until", lambda pred, t, i: pred())

    with pytest.raises(SettleTimeoutError) as exc:
        zed.populate_zfs_list_cache(target_root=str(target), rpool="rpool")

    assert "zed" in str(exc.value).lower()
    proc.terminate.assert_called_once()


def test_dry_run_only_logs(target, fake_zed, monkeypatch):
    in_target, _ = fake_zed
    waited = mock.Mock()
    monkeypatch.setattr(zed, "wait_until", waited)
    zed.start_background.return_value = None

    zed.populate_zfs_list_cache(target_root=str(target), rpool="rpool", dry_run=True)

    waited.assert_not_called()
    assert in_target[0] == ["mkdir", "-p", "/etc/zfs/zfs-list.cache"]

"""
Tests for disk discovery over a fake /dev/disk/by-path tree.
"""
import json
import logging
import os

import pytest

from zfs_convert.errors import NoSuitableDisksError, PreconditionError
from zfs_convert.lib import disks


@pytest.fixture
def dev_tree(tmp_path):
    dev = tmp_path / "dev"
    by_path = tmp_path / "by-path"
    dev.mkdir()
    by_path.mkdir()
    for name in ("sda", "sda1", "sdb", "sr0", "vda"):
        (dev / name).write_text("")

    def link(name, target):
        os.symlink(dev / target, by_path / name)

    link("pci-0000:00:1f.2-ata-1", "sda")
    link("pci-0000:00:1f.2-ata-1.0", "sda")  # alias of the same disk
    link("pci-0000:00:1f.2-ata-1-part1", "sda1")
    link("pci-0000:00:1f.2-ata-2", "sdb")
    link("pci-0000:00:1f.2-ata-3", "sr0")
    link("virtio-pci-0000:00:04.0", "vda")
    return dev, by_path


def _lsblk_tree(dev, mountpoints_key="mountpoint"):
    def mp(value):
        return {mountpoints_key: [value] if mountpoints_key == "mountpoints" else value}

    return json.dumps(
        {
            "blockdevices": [
                {"name": str(dev / "sda"), **mp(None), "children": [{"name": str(dev / "sda1"), **mp(None)}]},
                {"name": str(dev / "sdb"), **mp(None), "children": [{"name": str(dev / "sdb1"), **mp("/")}]},
                {"name": str(dev / "sr0"), **mp(None)},
                {"name": str(dev / "vda"), **mp(None)},
            ]
        }
    )


@pytest.fixture
def fake_udev(fake_runner, monkeypatch, dev_tree):
    dev, _ = dev_tree

    def udev_info(argv):
        real = os.path.realpath(argv[-1])
        props = ["DEVNAME=" + real, "DEVTYPE=disk"]
        if real.endswith("sr0"):
            props.append("ID_TYPE=cd")
        return 0, "\n".join(props) + "\n"

    fake_runner.respond_with(["udevadm", "info"], udev_info)
    fake_runner.respond(["lsblk"], 0, _lsblk_tree(dev))
    monkeypatch.setattr(disks, "run_cmd", fake_runner)
    return fake_runner


def test_discover_flags_optical_mounted_and_dedupes(dev_tree, fake_udev, tmp_path):
    dev, by_path = dev_tree
    dump = tmp_path / "logs" / "disks.log"

    found = disks.discover_disks(by_path_dir=str(by_path), dump_path=str(dump))

    by_real = {os.path.basename(d.real_path): d for d in found}
    assert sorted(by_real) == ["sda", "sdb", "sr0", "vda"]
    assert by_real["sr0"].optical and not by_real["sr0"].suitable
    assert by_real["sdb"].mounted and not by_real["sdb"].suitable
    assert by_real["sda"].suitable and by_real["vda"].suitable
    # First link in sorted order wins for an aliased disk.
    assert by_real["sda"].path == str(by_path / "pci-0000:00:1f.2-ata-1")


def test_partition_links_never_queried(dev_tree, fake_udev, tmp_path):
    _, by_path = dev_tree
    disks.discover_disks(by_path_dir=str(by_path), dump_path=str(tmp_path / "disks.log"))

    queried = [c[-1] for c in fake_udev.commands("udevadm") if c[1] == "info"]
    assert not any(q.endswith("-part1") for q in queried)
    assert len(queried) == 4


def test_dump_written_for_every_examined_device(dev_tree, fake_udev, tmp_path):
    _, by_path = dev_tree
    dump = tmp_path / "disks.log"

    disks.discover_disks(by_path_dir=str(by_path), dump_path=str(dump))

    text = dump.read_text()
    assert text.count("## DEVICE:") == 4
    assert "ID_TYPE=cd" in text
    assert "pci-0000:00:1f.2-ata-3 -> " in text


def test_find_suitable_disks_filters(dev_tree, fake_udev, tmp_path):
    _, by_path = dev_tree

    suitable = disks.find_suitable_disks(by_path_dir=str(by_path), dump_path=str(tmp_path / "disks.log"))

    assert [d.name for d in suitable] == ["sda", "vda"]


def test_discovery_is_repeatable(dev_tree, fake_udev, tmp_path):
    _, by_path = dev_tree
    dump = str(tmp_path / "disks.log")

    first = disks.find_suitable_disks(by_path_dir=str(by_path), dump_path=dump)
    second = disks.find_suitable_disks(by_path_dir=str(by_path), dump_path=dump)

    assert first == second


def test_lsblk_mountpoints_list_form(dev_tree, fake_runner, monkeypatch, tmp_path):
    dev, by_path = dev_tree
    fake_runner.respond(["lsblk"], 0, _lsblk_tree(dev, mountpoints_key="mountpoints"))
    monkeypatch.setattr(disks, "run_cmd", fake_runner)

    assert os.path.realpath(dev / "sdb") in disks.mounted_block_devices()
    assert os.path.realpath(dev / "sda") not in disks.mounted_block_devices()


def test_lsblk_failure_stops_discovery(fake_runner, monkeypatch):
    fake_runner.respond(["lsblk"], 1, "")
    monkeypatch.setattr(disks, "run_cmd", fake_runner)

    with pytest.raises(PreconditionError, match="lsblk failed"):
        disks.mounted_block_devices()


def test_lsblk_garbage_stops_discovery(dev_tree, fake_udev, tmp_path):
    _, by_path = dev_tree
    fake_udev.respond(["lsblk"], 0, "not json")
    dump = tmp_path / "disks.log"

    with pytest.raises(PreconditionError, match="Unparseable lsblk"):
        disks.find_suitable_disks(by_path_dir=str(by_path), dump_path=str(dump))

    assert not dump.exists()


def test_known_disks_ignores_mounts_and_has_no_side_effects(dev_tree, fake_udev):
    _, by_path = dev_tree

    known = disks.known_disks(by_path_dir=str(by_path))

    assert [d.name for d in known] == ["sda", "sdb", "vda"]
    assert all(d.suitable for d in known)
    assert [c[1] for c in fake_udev.commands("udevadm")] == ["info"] * 4
    assert fake_udev.commands("lsblk") == []


def test_discovery_log_names_device(dev_tree, fake_udev, tmp_path, caplog):
    _, by_path = dev_tree

    with caplog.at_level(logging.INFO, logger=disks.__name__):
        disks.discover_disks(by_path_dir=str(by_path), dump_path=str(tmp_path / "disks.log"))

    assert f"Disk {by_path / 'virtio-pci-0000:00:04.0'} (vda) optical=False mounted=False" in caplog.text


def test_no_suitable_disks_names_dump(tmp_path, fake_runner, monkeypatch):
    dev = tmp_path / "dev"
    by_path = tmp_path / "by-path"
    dev.mkdir()
    by_path.mkdir()
    (dev / "sr0").write_text("")
    os.symlink(dev / "sr0", by_path / "pci-0000:00:1f.2-ata-3")
    fake_runner.respond(["udevadm", "info"], 0, "ID_TYPE=cd\n")
    fake_runner.respond(["lsblk"], 0, json.dumps({"blockdevices": []}))
    monkeypatch.setattr(disks, "run_cmd", fake_runner)
    dump = tmp_path / "disks.log"

    with pytest.raises(NoSuitableDisksError) as exc:
        disks.find_suitable_disks(by_path_dir=str(by_path), dump_path=str(dump))

    assert str(dump) in str(exc.value)
    assert dump.exists()


def test_missing_by_path_dir(tmp_path):
    assert disks.list_by_path_links(str(tmp_path / "absent")) == []


def test_parse_properties():
    assert disks.parse_properties("A=1\nB = two\nnoise\n") == {"A": "1", "B": "two"}

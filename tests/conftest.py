"""
Pytest configuration and shared fixtures.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from zfs_convert.config import InstallConfig
from zfs_convert.errors import CommandError
from zfs_convert.lib.command import CmdResult

Response = Union[Tuple[int, str], Callable[[List[str]], Tuple[int, str]]]


class FakeRunner:
    """Stand-in for run_cmd: records argv and answers by longest matching prefix."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.envs: List[Optional[dict]] = []
        self.responses: Dict[Tuple[str, ...], Response] = {}

    def respond(self, prefix: Sequence[str], returncode: int = 0, stdout: str = "") -> None:
        self.responses[tuple(prefix)] = (returncode, stdout)

    def respond_with(self, prefix: Sequence[str], fn: Callable[[List[str]], Tuple[int, str]]) -> None:
        self.responses[tuple(prefix)] = fn

    def _lookup(self, argv: List[str]) -> Tuple[int, str]:
        best: Optional[Tuple[str, ...]] = None
        for prefix in self.responses:
            if tuple(argv[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return 0, ""
        resp = self.responses[best]
        return resp(argv) if callable(resp) else resp

    def __call__(self, argv, *, check=True, env=None, cwd=None, input_text=None, dry_run=False) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input_text)
        self.envs.append(env)
        if dry_run:
            return CmdResult(argv=argv, returncode=0, stdout="", stderr="")
        rc, out = self._lookup(argv)
        if check and rc != 0:
            raise CommandError(argv, rc, "boom")
        return CmdResult(argv=argv, returncode=rc, stdout=out, stderr="")

    def commands(self, name: str) -> List[List[str]]:
        return [c for c in self.calls if c and c[0] == name]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def immediate_wait():
    """wait_until replacement that evaluates the predicate exactly once."""

    calls = []

    def _wait(predicate, timeout_s, interval_s, **kwargs):
        calls.append((timeout_s, interval_s))
        return bool(predicate())

    _wait.calls = calls
    return _wait


@pytest.fixture
def sample_config(tmp_path) -> InstallConfig:
    return InstallConfig(
        disks=("/dev/disk/by-path/virtio-pci-0000:00:04.0", "/dev/disk/by-path/virtio-pci-0000:00:05.0"),
        swap_size_gb=0,
        tail_reserve_bytes=0,
        mirror=True,
        mount_dir=str(tmp_path / "mnt"),
        payload_path=str(tmp_path / "rootfs.tar.gz"),
    )

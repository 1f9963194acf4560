from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, NoReturn, Optional

from .config import KEYBOARD_LAYOUTS, InstallConfig, build_config, load_preset
from .context import ProvisioningContext
from .errors import InstallerError
from .lib.env import PATHS
from .lib.hwdetect import total_memory_mb
from .logging_utils import configure_logging
from .pipeline import run_pipeline
from .state_store import new_record, record_error, save_record
from .step_control import StepController
from .steps import (
    CheckPrerequisitesStep,
    ConfigureMountsStep,
    CreatePoolsStep,
    FindSuitableDisksStep,
    InstallBootloaderStep,
    InstallHostZfsStep,
    InstallTargetPackagesStep,
    PackOldSystemStep,
    PartitionDisksStep,
    PrepareChrootStep,
    RebootStep,
    RestorePayloadStep,
    SelectDisksStep,
    SyncZfsCacheStep,
    UnmountExportStep,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def build_steps():
    return [
        CheckPrerequisitesStep(),
        FindSuitableDisksStep(),
        SelectDisksStep(),
        PackOldSystemStep(),
        InstallHostZfsStep(),
        PartitionDisksStep(),
        CreatePoolsStep(),
        RestorePayloadStep(),
        PrepareChrootStep(),
        InstallTargetPackagesStep(),
        InstallBootloaderStep(),
        SyncZfsCacheStep(),
        ConfigureMountsStep(),
        UnmountExportStep(),
        RebootStep(),
    ]


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with the same status as every other fatal condition."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FATAL, f"{self.prog}: error: {message}\nUse -h or --help for usage information\n")


def _non_negative_int(text: str) -> int:
    if not text.isdigit():
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {text!r}")
    return int(text)


def get_parser() -> ArgumentParser:
    p = ArgumentParser(
        prog="zfs-convert",
        description="Convert this machine's disks to a mirrored/striped ZFS root, keeping the current root filesystem.",
        epilog="All data on the selected disks will be destroyed.",
    )
    p.add_argument("--config", default=None, help="Preset file (yaml|json) with any of the options below")
    p.add_argument("--state", default=None, help=f"Run record path (json|yaml, default {PATHS.state_default})")
    p.add_argument("--log", default=PATHS.install_log, help="Path to installer log")
    p.add_argument("-d", "--debug", action="store_true", help="Log command output at DEBUG level")
    p.add_argument("-j", "--jump-to", default=None, help="Skip steps until this step name, position or range (e.g. 30-50)")
    p.add_argument("-n", "--no-skips", default=None, help="Comma-separated steps/positions/ranges that run even while jumping")
    p.add_argument("--dry-run", action="store_true", default=None, help="Log mutating commands without running them")

    g = p.add_argument_group("layout")
    g.add_argument("--disk", action="append", dest="disks", default=None, help="Disk to use (repeatable)")
    g.add_argument("--mirror", action="store_true", default=None, help="Mirror the pools when two or more disks are selected")
    g.add_argument("--swap-size", type=_non_negative_int, dest="swap_size_gb", help="Swap size in GB (0 for no swap)")
    g.add_argument("--tail-reserve", type=_non_negative_int, dest="tail_reserve_bytes", help="Bytes left free at the end of each disk")
    g.add_argument("--bpool-name", default=None)
    g.add_argument("--rpool-name", default=None)
    g.add_argument("--bpool-tweaks", default=None, help="zpool create options for the boot pool")
    g.add_argument("--rpool-tweaks", default=None, help="zpool create options for the root pool")
    g.add_argument("--arc-max", type=_non_negative_int, dest="arc_max_mb", help="ZFS ARC max size in MB (0 for ZFS default)")
    g.add_argument(
        "--encrypt",
        action="store_true",
        default=None,
        help="Encrypt the root pool (passphrase from the preset or ZFS_CONVERT_PASSPHRASE)",
    )

    g = p.add_argument_group("system")
    g.add_argument("--hostname", default=None, help="Set target hostname")
    g.add_argument("--keyboard-layout", default=None, choices=sorted(KEYBOARD_LAYOUTS))
    g.add_argument("--no-reboot", dest="reboot", action="store_false", default=None, help="Do not reboot at the end")
    g.add_argument("--source-device", default=None, help="Partition holding the current root filesystem")
    g.add_argument("--payload", dest="payload_path", default=None, help="Where to keep the packed root filesystem")
    g.add_argument("--mount-dir", default=None, help="Altroot used while building the target")
    return p


_CONFIG_ARGS = [
    "disks", "mirror", "swap_size_gb", "tail_reserve_bytes", "bpool_name", "rpool_name",
    "bpool_tweaks", "rpool_tweaks", "arc_max_mb", "encrypt", "hostname", "keyboard_layout",
    "reboot", "source_device", "payload_path", "mount_dir", "dry_run", "jump_to", "no_skips",
]


def config_from_args(args: argparse.Namespace, *, memory_mb: Optional[int] = None) -> InstallConfig:
    preset = load_preset(args.config) if args.config else {}
    overrides = {name: getattr(args, name) for name in _CONFIG_ARGS}
    return build_config(preset=preset, overrides=overrides, memory_mb=memory_mb)


def run(cfg: InstallConfig, *, state_path: str, steps=None) -> Dict[str, Any]:
    """Run the conversion pipeline, writing the run record whatever happens."""

    record = new_record(cfg.redacted())
    ctx = ProvisioningContext(config=cfg)
    controller = StepController(cfg.jump_to, cfg.no_skips)

    try:
        result = run_pipeline(
            ctx=ctx,
            steps=steps if steps is not None else build_steps(),
            controller=controller,
            record=record,
        )
        ctx = result.ctx
        exe = record["execution"]
        exe["ran_steps"] = result.ran_steps
        exe["skipped_steps"] = result.skipped_steps
        exe["forced_steps"] = result.forced_steps
        if controller.armed:
            logger.warning("Jump target %s was never reached", controller.target)
        return record
    except Exception as e:
        logger.exception("Conversion failed")
        record_error(record, e)
        raise
    finally:
        record["hardware"] = ctx.hardware
        record["layout"] = ctx.layout_summary()
        save_record(state_path, record)


def main(argv: Optional[List[str]] = None) -> int:
    args = get_parser().parse_args(argv)

    debug = args.debug or os.environ.get("DEBUG") == "1"
    configure_logging(log_path=args.log, level=logging.DEBUG if debug else logging.INFO)

    try:
        cfg = config_from_args(args, memory_mb=total_memory_mb())
        run(cfg, state_path=args.state or PATHS.state_default)
    except InstallerError as e:
        logger.error("Fatal: %s", e)
        return EXIT_FATAL
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

from .step_05_check_prerequisites import CheckPrerequisitesStep
from .step_10_find_suitable_disks import FindSuitableDisksStep
from .step_15_select_disks import SelectDisksStep
from .step_20_pack_old_system import PackOldSystemStep
from .step_25_install_host_zfs import InstallHostZfsStep
from .step_30_partition_disks import PartitionDisksStep
from .step_35_create_pools import CreatePoolsStep
from .step_40_restore_payload import RestorePayloadStep
from .step_45_prepare_chroot import PrepareChrootStep
from .step_50_install_target_packages import InstallTargetPackagesStep
from .step_60_install_bootloader import InstallBootloaderStep
from .step_70_sync_zfs_cache import SyncZfsCacheStep
from .step_75_configure_mounts import ConfigureMountsStep
from .step_80_unmount_export import UnmountExportStep
from .step_90_reboot import RebootStep

__all__ = [
    "CheckPrerequisitesStep",
    "FindSuitableDisksStep",
    "SelectDisksStep",
    "PackOldSystemStep",
    "InstallHostZfsStep",
    "PartitionDisksStep",
    "CreatePoolsStep",
    "RestorePayloadStep",
    "PrepareChrootStep",
    "InstallTargetPackagesStep",
    "InstallBootloaderStep",
    "SyncZfsCacheStep",
    "ConfigureMountsStep",
    "UnmountExportStep",
    "RebootStep",
]

from .context import InstallContext, Stage
from .device import (
	FilesystemType,
	LsblkInfo,
	PartitionFlag,
	PartitionPlan,
	PartitionRole,
	PartitionSpec,
	SectorSize,
	Size,
	TargetDisk,
	Unit,
	partition_prefix,
)
from .mount_table import MountEntry, MountTable
from .profile import DEFAULT_PASSWORD, InstallationProfile

__all__ = [
	'DEFAULT_PASSWORD',
	'FilesystemType',
	'InstallContext',
	'InstallationProfile',
	'LsblkInfo',
	'MountEntry',
	'MountTable',
	'PartitionFlag',
	'PartitionPlan',
	'PartitionRole',
	'PartitionSpec',
	'SectorSize',
	'Size',
	'Stage',
	'TargetDisk',
	'Unit',
	'partition_prefix',
]

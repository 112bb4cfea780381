from pathlib import Path

from ..exceptions import DiskError
from ..models.device import (
	FilesystemType,
	PartitionFlag,
	PartitionPlan,
	PartitionRole,
	PartitionSpec,
	Size,
	TargetDisk,
	Unit,
)
from ..output import debug

ESP_START_MIB = 1
ESP_SIZE_MIB = 512
SWAP_FULL_RAM_LIMIT_MIB = 8192

EFI_MOUNTPOINT = Path('/boot/efi')


def swap_size_mib(ram_mib: int) -> int:
	"""
	Swap matches RAM up to 8 GiB; memory above that only
	adds half its size to the swap partition.
	"""
	if ram_mib < 0:
		raise ValueError(f'RAM size cannot be negative: {ram_mib}')

	if ram_mib <= SWAP_FULL_RAM_LIMIT_MIB:
		return ram_mib

	return SWAP_FULL_RAM_LIMIT_MIB + (ram_mib - SWAP_FULL_RAM_LIMIT_MIB) // 2


def usable_end(disk: TargetDisk) -> Size:
	return disk.total_size.gpt_end().align()


def minimum_disk_size(ram_mib: int) -> Size:
	"""
	Smallest disk on which the fixed layout still leaves a 1 MiB root
	"""
	mib = ESP_START_MIB + ESP_SIZE_MIB + swap_size_mib(ram_mib) + 1 + 1
	return Size(mib, Unit.MiB)


def suggest_partition_plan(
	disk: TargetDisk,
	ram_mib: int,
	root_fs: FilesystemType = FilesystemType.Ext4,
) -> PartitionPlan:
	"""
	Lays out the three partitions back to back: the ESP at a 1 MiB offset,
	swap sized from the installed memory and root filling the rest of the
	disk up to the backup GPT header.
	"""
	sector_size = disk.sector_size
	end = usable_end(disk)

	esp = PartitionSpec(
		role=PartitionRole.EFI,
		number=1,
		name='EFI',
		start=Size(ESP_START_MIB, Unit.MiB, sector_size),
		length=Size(ESP_SIZE_MIB, Unit.MiB, sector_size),
		fs_type=FilesystemType.Fat32,
		flags=[PartitionFlag.ESP],
		mountpoint=EFI_MOUNTPOINT,
		dev_path=disk.partition_path(1),
	)

	swap = PartitionSpec(
		role=PartitionRole.SWAP,
		number=2,
		name='swap',
		start=esp.end,
		length=Size(swap_size_mib(ram_mib), Unit.MiB, sector_size),
		fs_type=FilesystemType.LinuxSwap,
		flags=[PartitionFlag.SWAP],
		dev_path=disk.partition_path(2),
	)

	root_start = swap.end

	if end <= root_start:
		raise DiskError(
			f'{disk.path} is too small: {disk.total_size.format_highest()} available, '
			f'at least {minimum_disk_size(ram_mib).format_highest()} required'
		)

	root = PartitionSpec(
		role=PartitionRole.ROOT,
		number=3,
		name='root',
		start=root_start,
		length=end - root_start,
		fs_type=root_fs,
		mountpoint=Path('/'),
		dev_path=disk.partition_path(3),
	)

	plan = PartitionPlan(disk, [esp, swap, root])
	plan.validate()

	debug(f'Suggested partition plan for {disk.path}: {plan.json()}')

	return plan

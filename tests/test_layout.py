from pathlib import Path

import pytest

from archstrap.lib.disk.layout import minimum_disk_size, suggest_partition_plan, swap_size_mib
from archstrap.lib.exceptions import DiskError
from archstrap.lib.models.device import (
	FilesystemType,
	PartitionFlag,
	PartitionRole,
	SectorSize,
	Size,
	TargetDisk,
	Unit,
)


def _disk(size: Size, path: str = '/dev/sda', sector_size: SectorSize | None = None) -> TargetDisk:
	return TargetDisk(
		path=Path(path),
		total_size=size,
		sector_size=sector_size or SectorSize.default(),
	)


@pytest.mark.parametrize(
	'ram_mib, expected',
	[
		(0, 0),
		(2048, 2048),
		(8192, 8192),
		(8193, 8192),
		(8194, 8193),
		(16384, 12288),
		(32768, 20480),
	],
)
def test_swap_size(ram_mib: int, expected: int) -> None:
	assert swap_size_mib(ram_mib) == expected


def test_swap_size_rejects_negative_ram() -> None:
	with pytest.raises(ValueError):
		swap_size_mib(-1)


def test_plan_for_64gib_disk_with_4gib_ram() -> None:
	disk = _disk(Size(64, Unit.GiB))
	plan = suggest_partition_plan(disk, 4096)

	efi, swap, root = plan.partitions

	assert efi.role == PartitionRole.EFI
	assert efi.start == Size(1, Unit.MiB)
	assert efi.length == Size(512, Unit.MiB)
	assert efi.fs_type == FilesystemType.Fat32
	assert efi.flags == [PartitionFlag.ESP]
	assert efi.mountpoint == Path('/boot/efi')

	assert swap.start == efi.end
	assert swap.length == Size(4096, Unit.MiB)
	assert swap.fs_type == FilesystemType.LinuxSwap

	assert root.start == Size(4609, Unit.MiB)
	assert root.length == Size(60926, Unit.MiB)
	assert root.length.format_highest() == '59.5 GiB'
	assert root.mountpoint == Path('/')

	# the last MiB stays free for the backup GPT header
	assert root.end == Size(65535, Unit.MiB)


def test_plan_device_paths() -> None:
	plan = suggest_partition_plan(_disk(Size(64, Unit.GiB), '/dev/nvme0n1'), 4096)

	assert [p.dev_path for p in plan.partitions] == [
		Path('/dev/nvme0n1p1'),
		Path('/dev/nvme0n1p2'),
		Path('/dev/nvme0n1p3'),
	]


def test_plan_root_filesystem() -> None:
	plan = suggest_partition_plan(_disk(Size(64, Unit.GiB)), 4096, FilesystemType.Btrfs)
	assert plan.root.fs_type == FilesystemType.Btrfs


@pytest.mark.parametrize('disk_gib', [8, 16, 20, 64, 500, 2048])
@pytest.mark.parametrize('ram_mib', [1024, 4096, 8192, 16384])
def test_plan_boundaries_strictly_increase(disk_gib: int, ram_mib: int) -> None:
	disk = _disk(Size(disk_gib, Unit.GiB))

	if disk.total_size < minimum_disk_size(ram_mib):
		pytest.skip('disk too small for this amount of memory')

	plan = suggest_partition_plan(disk, ram_mib)
	boundaries = [b for p in plan.partitions for b in (p.start, p.end)]

	for first, second in zip(plan.partitions, plan.partitions[1:]):
		assert first.end == second.start

	for part in plan.partitions:
		assert part.start < part.end

	assert boundaries == sorted(boundaries, key=lambda s: s.convert(Unit.B).value)
	assert plan.partitions[-1].end <= disk.total_size


def test_plan_with_4k_sectors() -> None:
	disk = _disk(Size(64, Unit.GiB), sector_size=SectorSize(4096, Unit.B))
	plan = suggest_partition_plan(disk, 4096)

	assert plan.root.start.convert(Unit.sectors, disk.sector_size).value == 4609 * 256


def test_minimum_disk_size_is_enough() -> None:
	ram_mib = 4096
	disk = _disk(minimum_disk_size(ram_mib))

	plan = suggest_partition_plan(disk, ram_mib)
	assert plan.root.length == Size(1, Unit.MiB)


def test_disk_too_small() -> None:
	ram_mib = 4096
	size = minimum_disk_size(ram_mib) - Size(1, Unit.MiB)

	with pytest.raises(DiskError, match='too small'):
		suggest_partition_plan(_disk(size), ram_mib)

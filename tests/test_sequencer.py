from pathlib import Path

import pytest

from archstrap.lib.disk.device_handler import DeviceHandler
from archstrap.lib.disk.sequencer import DiskSequencer
from archstrap.lib.exceptions import DiskError
from archstrap.lib.models.context import InstallContext
from archstrap.lib.models.device import FilesystemType, PartitionPlan, PartitionRole, Size, TargetDisk, Unit
from archstrap.lib.models.mount_table import MountEntry
from archstrap.lib.models.profile import InstallationProfile


class RecordingHandler(DeviceHandler):
	"""
	Stands in for the real device handler and records every call instead
	of touching a block device.
	"""

	def __init__(self, fail_on: str | None = None) -> None:
		self.calls: list[tuple[str, ...]] = []
		self.active_swap: set[Path] = set()
		self.fail_on = fail_on

	def _record(self, *call: str) -> None:
		if self.fail_on and call[0] == self.fail_on:
			raise DiskError(f'{call[0]} failed')
		self.calls.append(call)

	def partition(self, plan: PartitionPlan) -> None:
		self._record('partition', str(plan.disk.path))

	def format(self, fs_type: FilesystemType, path: Path) -> None:
		self._record('format', fs_type.value, str(path))

	def swapon(self, path: Path) -> None:  # type: ignore[override]
		self._record('swapon', str(path))
		self.active_swap.add(path)

	def is_swap_active(self, path: Path) -> bool:  # type: ignore[override]
		return path in self.active_swap

	def mount(self, dev_path: Path, target_mountpoint: Path, mount_fs: str | None = None) -> None:
		self._record('mount', str(dev_path), str(target_mountpoint), mount_fs or '')


def _context(path: str = '/dev/sda', root_fs: FilesystemType = FilesystemType.Ext4) -> InstallContext:
	return InstallContext(
		mountpoint=Path('/mnt'),
		disk=TargetDisk(Path(path), Size(64, Unit.GiB)),
		profile=InstallationProfile(root_fs=root_fs),
	)


def test_partition_sequence() -> None:
	handler = RecordingHandler()
	sequencer = DiskSequencer(handler)
	ctx = _context()

	sequencer.plan(ctx, ram_mib=4096)
	mount_table = sequencer.partition(ctx)

	assert handler.calls == [
		('partition', '/dev/sda'),
		('format', 'fat32', '/dev/sda1'),
		('format', 'linux-swap', '/dev/sda2'),
		('swapon', '/dev/sda2'),
		('format', 'ext4', '/dev/sda3'),
		('mount', '/dev/sda3', '/mnt', 'ext4'),
		('mount', '/dev/sda1', '/mnt/boot/efi', 'vfat'),
	]

	assert mount_table is ctx.mount_table
	assert len(mount_table) == 2
	assert mount_table.is_complete()
	assert [e.role for e in mount_table.entries] == [PartitionRole.ROOT, PartitionRole.EFI]


def test_nvme_partition_paths() -> None:
	handler = RecordingHandler()
	sequencer = DiskSequencer(handler)
	ctx = _context('/dev/nvme0n1', FilesystemType.Xfs)

	sequencer.plan(ctx, ram_mib=2048)
	sequencer.partition(ctx)

	assert ('format', 'xfs', '/dev/nvme0n1p3') in handler.calls
	assert ctx.mount_table.efi.dev_path == Path('/dev/nvme0n1p1')


def test_plan_uses_detected_memory(monkeypatch: pytest.MonkeyPatch) -> None:
	from archstrap.lib.hardware import SysInfo

	monkeypatch.setattr(SysInfo, 'mem_total_mib', staticmethod(lambda: 16384))

	ctx = _context()
	plan = DiskSequencer(RecordingHandler()).plan(ctx)

	assert plan.swap.length == Size(12288, Unit.MiB)
	assert ctx.plan is plan


def test_complete_mount_table_is_not_repartitioned() -> None:
	handler = RecordingHandler()
	sequencer = DiskSequencer(handler)
	ctx = _context()

	sequencer.plan(ctx, ram_mib=4096)
	ctx.mount_table.add(MountEntry(PartitionRole.ROOT, Path('/dev/sda3'), Path('/mnt'), FilesystemType.Ext4))
	ctx.mount_table.add(MountEntry(PartitionRole.EFI, Path('/dev/sda1'), Path('/mnt/boot/efi'), FilesystemType.Fat32))

	sequencer.partition(ctx)

	assert [c[0] for c in handler.calls] == ['mount', 'mount', 'swapon']


def test_partial_mount_table_is_refused() -> None:
	handler = RecordingHandler()
	ctx = _context()
	ctx.mount_table.add(MountEntry(PartitionRole.ROOT, Path('/dev/sda3'), Path('/mnt'), FilesystemType.Ext4))

	with pytest.raises(DiskError, match='partially'):
		DiskSequencer(handler).partition(ctx)

	assert handler.calls == []


def test_failure_stops_the_sequence() -> None:
	handler = RecordingHandler(fail_on='swapon')
	sequencer = DiskSequencer(handler)
	ctx = _context()
	sequencer.plan(ctx, ram_mib=4096)

	with pytest.raises(DiskError):
		sequencer.partition(ctx)

	assert [c[0] for c in handler.calls] == ['partition', 'format', 'format']
	assert len(ctx.mount_table) == 0

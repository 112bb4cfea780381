from __future__ import annotations

import stat
from pathlib import Path
from typing import TYPE_CHECKING

from ..exceptions import DiskError, SysCallError, UnknownFilesystemFormat
from ..general import SysCommand
from ..models.device import FilesystemType, PartitionPlan, PartitionSpec, TargetDisk, Unit
from ..output import debug, error, info
from .utils import get_lsblk_info, iter_partitions, umount

if TYPE_CHECKING:
	from parted import Disk


class DeviceHandler:
	"""
	Every operation that touches a block device. Reads go through lsblk,
	the partition table is written with pyparted and filesystems are
	created with the mkfs family of tools.
	"""

	@staticmethod
	def is_block_device(path: Path) -> bool:
		try:
			return stat.S_ISBLK(path.stat().st_mode)
		except (FileNotFoundError, NotADirectoryError, PermissionError):
			return False

	def get_device(self, path: Path) -> TargetDisk:
		lsblk_info = get_lsblk_info(path)

		if not lsblk_info.is_disk():
			raise DiskError(f'{path} is a {lsblk_info.type}, not a whole disk')

		return TargetDisk.from_lsblk(lsblk_info)

	def umount_all_existing(self, device_path: Path) -> None:
		debug(f'Unmounting all existing partitions: {device_path}')

		lsblk_info = get_lsblk_info(device_path)

		for partition in [lsblk_info, *iter_partitions(lsblk_info)]:
			if partition.fstype == 'swap' and partition.mountpoints:
				debug(f'Deactivating swap: {partition.path}')
				self.swapoff(partition.path)
				continue

			for mountpoint in partition.mountpoints:
				umount(mountpoint, recursive=True)

	def _wipe(self, dev_path: Path) -> None:
		"""
		Wipe a device (partition or otherwise) of meta-data, be it file system, LVM, etc.
		"""
		try:
			SysCommand(['wipefs', '--all', '--force', str(dev_path)])
		except SysCallError as err:
			raise DiskError(f'Could not wipe {dev_path}: {err.message}') from err

	def wipe_dev(self, device_path: Path) -> None:
		"""
		This is not intended to be secure, but rather to ensure that
		auto-discovery tools don't recognize anything here.
		"""
		info(f'Wiping partitions and metadata: {device_path}')

		lsblk_info = get_lsblk_info(device_path)

		for partition in iter_partitions(lsblk_info):
			self._wipe(partition.path)

		self._wipe(device_path)

	def _setup_partition(self, part: PartitionSpec, disk: Disk) -> None:
		import parted

		sector_size = part.start.sector_size

		start_sector = part.start.convert(Unit.sectors, sector_size)
		length_sector = part.length.convert(Unit.sectors, sector_size)

		geometry = parted.Geometry(
			device=disk.device,
			start=start_sector.value,
			length=length_sector.value,
		)

		fs_value = part.fs_type.parted_value
		filesystem = parted.FileSystem(type=fs_value, geometry=geometry)

		partition = parted.Partition(
			disk=disk,
			type=parted.PARTITION_NORMAL,
			fs=filesystem,
			geometry=geometry,
		)

		debug(f'\tPartition: {part.number} ({part.name})')
		debug(f'\tFilesystem: {fs_value}')
		debug(f'\tGeometry: {start_sector.value} start sector, {length_sector.value} length')

		try:
			disk.addPartition(partition=partition, constraint=disk.device.optimalAlignedConstraint)
		except parted.PartitionException as ex:
			raise DiskError(f'Unable to add partition, most likely due to overlapping sectors: {ex}') from ex

		partition.set_name(part.name)

		for flag in part.flags:
			partition.setFlag(getattr(parted, flag.parted_name))

		# the partition has a path now that it has been added
		part.dev_path = Path(partition.path)

	def partition(self, plan: PartitionPlan) -> None:
		"""
		Write a fresh GPT to the plan's disk and create all of its partitions.
		WARNING: the entire device will be wiped and all data lost
		"""
		import parted

		device_path = plan.disk.path

		self.umount_all_existing(device_path)
		self.wipe_dev(device_path)

		info(f'Creating GPT partition table: {device_path}')

		try:
			device = parted.getDevice(str(device_path))
			disk = parted.freshDisk(device, 'gpt')

			for part in plan.partitions:
				info(f'Creating partition {part.number}: {part.name} ({part.length.format_highest()})')
				self._setup_partition(part, disk)

			disk.commit()
		except (parted.IOException, parted.DiskException) as err:
			raise DiskError(f'Could not write partition table to {device_path}: {err}') from err

		self.partprobe(device_path)
		self.udev_sync()

	_MKFS_COMMANDS: dict[FilesystemType, list[str]] = {
		FilesystemType.Fat32: ['mkfs.fat', '-F', '32'],
		FilesystemType.Ext4: ['mkfs.ext4', '-F'],
		FilesystemType.Xfs: ['mkfs.xfs', '-f'],
		FilesystemType.Btrfs: ['mkfs.btrfs', '-f'],
		FilesystemType.LinuxSwap: ['mkswap'],
	}

	def format(self, fs_type: FilesystemType, path: Path) -> None:
		if fs_type not in self._MKFS_COMMANDS:
			raise UnknownFilesystemFormat(f'Filetype "{fs_type.value}" is not supported')

		cmd = [*self._MKFS_COMMANDS[fs_type], str(path)]
		debug('Formatting filesystem:', ' '.join(cmd))

		try:
			SysCommand(cmd)
		except SysCallError as err:
			msg = f'Could not format {path} with {fs_type.value}: {err.message}'
			error(msg)
			raise DiskError(msg) from err

	@staticmethod
	def swapon(path: Path) -> None:
		try:
			SysCommand(['swapon', str(path)])
		except SysCallError as err:
			raise DiskError(f'Could not enable swap {path}:\n{err.message}') from err

	@staticmethod
	def swapoff(path: Path) -> None:
		try:
			SysCommand(['swapoff', str(path)])
		except SysCallError as err:
			raise DiskError(f'Could not disable swap {path}:\n{err.message}') from err

	@staticmethod
	def is_swap_active(path: Path) -> bool:
		swaps = Path('/proc/swaps').read_text().splitlines()[1:]
		return any(line.split()[0] == str(path) for line in swaps if line.strip())

	def is_mounted_at(self, dev_path: Path, target_mountpoint: Path) -> bool:
		lsblk_info = get_lsblk_info(dev_path)
		return target_mountpoint in lsblk_info.mountpoints

	def mount(self, dev_path: Path, target_mountpoint: Path, mount_fs: str | None = None) -> None:
		target_mountpoint.mkdir(parents=True, exist_ok=True)

		if self.is_mounted_at(dev_path, target_mountpoint):
			info(f'{dev_path} already mounted at {target_mountpoint}')
			return

		cmd = ['mount']
		if mount_fs:
			cmd.extend(('-t', mount_fs))
		cmd.extend((str(dev_path), str(target_mountpoint)))

		debug(f'Mounting {dev_path}: {" ".join(cmd)}')

		try:
			SysCommand(cmd)
		except SysCallError as err:
			raise DiskError(f'Could not mount {dev_path}: {" ".join(cmd)}\n{err.message}') from err

	def partprobe(self, path: Path) -> None:
		try:
			SysCommand(['partprobe', str(path)])
		except SysCallError as err:
			# the table is on disk, the kernel picks it up after udev settles
			if 'unable to inform the kernel of the change' not in str(err):
				raise DiskError(f'partprobe {path} failed: {err.message}') from err
			info(f'Partprobe could not inform the kernel about {path} yet, continuing')

	@staticmethod
	def udev_sync() -> None:
		try:
			SysCommand('udevadm settle')
		except SysCallError as err:
			raise DiskError(f'Failed to synchronize with udev: {err.message}') from err


device_handler = DeviceHandler()

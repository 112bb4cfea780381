from pathlib import Path

from ..exceptions import DiskError
from ..hardware import SysInfo
from ..models.context import InstallContext
from ..models.device import PartitionPlan, PartitionRole, PartitionSpec
from ..models.mount_table import MountEntry, MountTable
from ..output import FormattedOutput, debug, header, info, step, success
from .device_handler import DeviceHandler, device_handler
from .layout import suggest_partition_plan


class DiskSequencer:
	"""
	Turns the confirmed target disk into a mounted ESP + swap + root layout.

	The steps run strictly in order and any failing command aborts the
	sequence through :class:`DiskError`. Nothing is rolled back.
	"""

	def __init__(self, handler: DeviceHandler = device_handler) -> None:
		self._handler = handler

	def plan(self, ctx: InstallContext, ram_mib: int | None = None) -> PartitionPlan:
		if ram_mib is None:
			ram_mib = SysInfo.mem_total_mib()

		plan = suggest_partition_plan(ctx.disk, ram_mib, ctx.profile.root_fs)
		ctx.plan = plan

		info(f'Partition plan for {ctx.disk.path}:')
		info(FormattedOutput.as_table(plan.partitions))

		return plan

	def partition(self, ctx: InstallContext) -> MountTable:
		if ctx.mount_table.is_complete():
			info('Mount table already populated, skipping partitioning')
			self.ensure_mounted(ctx.mount_table, ctx.swap_path)
			return ctx.mount_table

		if ctx.mount_table.entries:
			raise DiskError(
				'Found a partially recorded mount table; the disk is in an unknown state. '
				'Start over without --resume-from to re-partition it.'
			)

		plan = ctx.plan or self.plan(ctx)

		header('Partitioning disk')
		self._handler.partition(plan)
		success('Partitioning completed')

		header('Formatting partitions')
		self._format(plan)
		success('Formatting completed')

		header('Mounting partitions')
		self._mount(ctx, plan)
		success('Mounting completed')

		if not ctx.mount_table.is_complete():
			raise DiskError(f'Mount table is incomplete: {ctx.mount_table.json()}')

		return ctx.mount_table

	def _format(self, plan: PartitionPlan) -> None:
		efi = plan.efi
		swap = plan.swap
		root = plan.root

		step(f'Formatting EFI partition ({efi.fs_type.value})')
		self._handler.format(efi.fs_type, efi.safe_dev_path)

		step('Setting up swap')
		self._handler.format(swap.fs_type, swap.safe_dev_path)
		self._handler.swapon(swap.safe_dev_path)

		step(f'Formatting root partition ({root.fs_type.value})')
		self._handler.format(root.fs_type, root.safe_dev_path)

	def _mount_partition(self, ctx: InstallContext, part: PartitionSpec, role: PartitionRole) -> None:
		target = ctx.mountpoint / part.relative_mountpoint

		self._handler.mount(
			part.safe_dev_path,
			target,
			mount_fs=part.fs_type.fs_type_mount,
		)

		ctx.mount_table.add(MountEntry(role, part.safe_dev_path, target, part.fs_type))
		debug(f'Mount table: {ctx.mount_table.json()}')

	def _mount(self, ctx: InstallContext, plan: PartitionPlan) -> None:
		step('Mounting root partition')
		self._mount_partition(ctx, plan.root, PartitionRole.ROOT)

		step('Creating and mounting EFI directory')
		self._mount_partition(ctx, plan.efi, PartitionRole.EFI)

	def ensure_mounted(self, mount_table: MountTable, swap_path: Path | None = None) -> None:
		"""
		Re-establishes the recorded mounts, root first, after an interrupted run
		"""
		for entry in mount_table.entries:
			self._handler.mount(entry.dev_path, entry.mountpoint, mount_fs=entry.fs_type.fs_type_mount)

		if swap_path is not None and not self._handler.is_swap_active(swap_path):
			self._handler.swapon(swap_path)

from collections.abc import Callable
from pathlib import Path

from archstrap.lib.args import ArchstrapConfig, ConfigHandler
from archstrap.lib.configuration import ConfigurationOutput
from archstrap.lib.disk.sequencer import DiskSequencer
from archstrap.lib.exceptions import RequirementError
from archstrap.lib.installer import Bootstrapper
from archstrap.lib.interactions import ask_profile, select_disk
from archstrap.lib.models.context import InstallContext, Stage
from archstrap.lib.models.mount_table import MountTable
from archstrap.lib.models.profile import InstallationProfile
from archstrap.lib.output import debug, error, info
from archstrap.lib.preflight import PreflightValidator
from archstrap.lib.resumehandler import ResumeHandler
from archstrap.lib.timesync import enable_ntp, wait_for_sync


class Guided:
	"""
	Runs the preflight, disk and bootstrap stages in order, saving the
	installation state after each one so a failed run can be picked up
	again with ``--resume-from``.
	"""

	def __init__(
		self,
		handler: ConfigHandler,
		validator: PreflightValidator | None = None,
		sequencer: DiskSequencer | None = None,
		bootstrapper: Bootstrapper | None = None,
		resume_handler: ResumeHandler | None = None,
		ask: Callable[[str], str] = input,
	) -> None:
		self.args = handler.args
		self.config = handler.config
		self.validator = validator or PreflightValidator()
		self.sequencer = sequencer or DiskSequencer()
		self.bootstrapper = bootstrapper or Bootstrapper()
		self.resume_handler = resume_handler or ResumeHandler()
		self._ask = ask

	def _ask_disk(self) -> Path:
		if self.config.disk and self.args.silent:
			return self.config.disk
		return select_disk(ask=self._ask)

	def _ask_profile(self) -> InstallationProfile:
		if self.config.profile and self.args.silent:
			return self.config.profile
		return ask_profile(self.config.profile, ask=self._ask)

	def _save(self, ctx: InstallContext, stage: Stage) -> None:
		ctx.mark_completed(stage)
		self.resume_handler.save(ctx, self.config.version)

	def _write_configuration(self, ctx: InstallContext) -> ConfigurationOutput:
		config = ArchstrapConfig(version=self.config.version, disk=ctx.disk.path, profile=ctx.profile)
		output = ConfigurationOutput(config, ctx.plan)
		output.write_debug()
		output.save()
		return output

	def preflight(self) -> InstallContext | None:
		self.validator.check_environment()

		disk = self.validator.check_device(self._ask_disk())
		profile = self._ask_profile()

		ctx = InstallContext(mountpoint=self.args.mountpoint, disk=disk, profile=profile)
		self.sequencer.plan(ctx)

		if self.args.dry_run:
			self._write_configuration(ctx).show()
			info('Dry run, nothing was written to disk')
			return None

		self.validator.confirm(disk, self._ask)
		self._write_configuration(ctx)
		self._save(ctx, Stage.Preflight)

		return ctx

	def resume(self, stage: Stage) -> InstallContext:
		state = self.resume_handler.load()

		if stage.follows(state.next_stage()):
			raise RequirementError(
				f'Cannot resume from the {stage.value} stage, the saved installation only completed '
				f'{", ".join(s.value for s in state.completed) or "nothing"}. '
				f'Use --resume-from={state.next_stage().value} instead.'
			)

		self.validator.check_environment()
		disk = self.validator.check_device(state.disk)

		mount_table = MountTable()
		if stage == Stage.Bootstrap:
			mount_table = state.restore_mount_table()

		ctx = InstallContext(
			mountpoint=state.mountpoint,
			disk=disk,
			profile=state.profile,
			mount_table=mount_table,
			completed=[s for s in Stage.ordered() if stage.follows(s)],
		)

		self.sequencer.plan(ctx)

		# Anything that re-partitions the disk has to be confirmed again
		if stage != Stage.Bootstrap:
			self.validator.confirm(disk, self._ask)

		self._save(ctx, Stage.Preflight)
		return ctx

	def disk(self, ctx: InstallContext) -> None:
		if not self.args.skip_ntp:
			enable_ntp()
			wait_for_sync()
		else:
			info('Skipping time synchronization (this can cause issues if time is out of sync during installation)')

		self.sequencer.partition(ctx)
		self._save(ctx, Stage.Disk)

	def bootstrap(self, ctx: InstallContext) -> None:
		self.bootstrapper.bootstrap(ctx)
		self._save(ctx, Stage.Bootstrap)
		self.resume_handler.clear()

	def _run_stage(self, stage: Stage, ctx: InstallContext) -> None:
		try:
			if stage == Stage.Disk:
				self.disk(ctx)
			else:
				self.bootstrap(ctx)
		except Exception:
			error(
				f'The {stage.value} stage failed. Fix the problem above and rerun with '
				f'--resume-from={stage.value} to continue where it stopped.'
			)
			raise

	def run(self) -> None:
		stage = self.args.resume_stage

		if stage is None:
			ctx = self.preflight()
			if ctx is None:
				return
		else:
			ctx = self.resume(stage)

		debug(f'Installation context: {ctx}')

		if stage == Stage.Bootstrap:
			# Mounts do not survive a reboot of the live medium
			self.sequencer.ensure_mounted(ctx.mount_table, ctx.swap_path)
		else:
			self._run_stage(Stage.Disk, ctx)

		self._run_stage(Stage.Bootstrap, ctx)


def guided(handler: ConfigHandler) -> None:
	Guided(handler).run()

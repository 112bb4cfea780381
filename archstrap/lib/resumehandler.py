from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from .exceptions import RequirementError
from .models.context import InstallContext, Stage
from .models.mount_table import MountTable
from .models.profile import InstallationProfile
from .output import debug, info, logger


class InstallState(BaseModel):
	"""
	Progress of an installation as written after every completed stage.
	"""

	version: str | None = None
	disk: Path
	mountpoint: Path = Path('/mnt')
	profile: InstallationProfile
	mount_table: list[dict[str, Any]] = []
	completed: list[Stage] = []

	@classmethod
	def from_context(cls, ctx: InstallContext, version: str | None = None) -> 'InstallState':
		return InstallState(
			version=version,
			disk=ctx.disk.path,
			mountpoint=ctx.mountpoint,
			profile=ctx.profile,
			mount_table=list(ctx.mount_table.json()),
			completed=list(ctx.completed),
		)

	def restore_mount_table(self) -> MountTable:
		return MountTable.parse_arg(self.mount_table)  # type: ignore[arg-type]

	def next_stage(self) -> Stage:
		for stage in Stage.ordered():
			if stage not in self.completed:
				return stage
		return Stage.ordered()[-1]


class ResumeHandler:
	_STATE_FILENAME = 'install_state.json'

	def __init__(self, directory: Path | None = None) -> None:
		self._directory = directory

	@property
	def state_file(self) -> Path:
		return (self._directory or logger.directory) / self._STATE_FILENAME

	def has_saved_state(self) -> bool:
		return self.state_file.is_file()

	def load(self) -> InstallState:
		if not self.has_saved_state():
			raise RequirementError(f'No saved installation state found at {self.state_file}, start a fresh installation instead')

		try:
			state = InstallState.model_validate_json(self.state_file.read_text())
		except ValidationError as err:
			raise RequirementError(f'Saved installation state {self.state_file} is unusable: {err}') from err

		debug(f'Loaded installation state: {state.model_dump_json()}')
		return state

	def save(self, ctx: InstallContext, version: str | None = None) -> None:
		state = InstallState.from_context(ctx, version)

		self.state_file.parent.mkdir(parents=True, exist_ok=True)
		self.state_file.write_text(state.model_dump_json(indent=4))

		debug(f'Installation state saved to {self.state_file}')

	def clear(self) -> None:
		if self.has_saved_state():
			self.state_file.unlink()
			info(f'Removed saved installation state {self.state_file}')

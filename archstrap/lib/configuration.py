import json
import stat
from pathlib import Path
from typing import Any

from .args import ArchstrapConfig
from .general import JSON
from .models.device import PartitionPlan
from .output import FormattedOutput, debug, info, logger, warn


class ConfigurationOutput:
	def __init__(self, config: ArchstrapConfig, plan: PartitionPlan | None = None):
		"""
		Configuration output handler to parse the existing
		configuration data structure and prepare for output on the
		console and for saving it to configuration files

		:param config: archstrap configuration object
		:type config: ArchstrapConfig

		:param plan: the partition plan computed for the target disk, if any
		:type plan: PartitionPlan
		"""

		self._config = config
		self._plan = plan
		self._default_save_path = logger.directory
		self._user_config_file = Path('user_configuration.json')

	@property
	def user_configuration_file(self) -> Path:
		return self._user_config_file

	def user_config(self) -> dict[str, Any]:
		out = self._config.safe_json()

		if self._plan:
			out['partition_plan'] = self._plan.json()

		return out

	def user_config_to_json(self) -> str:
		return json.dumps(self.user_config(), indent=4, sort_keys=True, cls=JSON)

	def write_debug(self) -> None:
		debug(' -- Chosen configuration --')
		debug(self.user_config_to_json())

	def show(self) -> None:
		info(' -- Chosen configuration --')
		info(self.user_config_to_json())

		if self._plan:
			info(FormattedOutput.as_table(self._plan.partitions))

	def _is_valid_path(self, dest_path: Path) -> bool:
		dest_path_ok = dest_path.exists() and dest_path.is_dir()
		if not dest_path_ok:
			warn(
				f'Destination directory {dest_path.resolve()} does not exist or is not a directory\n.',
				'Configuration files can not be saved',
			)
		return dest_path_ok

	def save_user_config(self, dest_path: Path) -> None:
		if self._is_valid_path(dest_path):
			target = dest_path / self._user_config_file
			target.write_text(self.user_config_to_json())
			target.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)

	def save(self, dest_path: Path | None = None) -> None:
		save_path = dest_path or self._default_save_path

		if self._is_valid_path(save_path):
			self.save_user_config(save_path)

import argparse
import json
from argparse import ArgumentParser
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

from pydantic.dataclasses import dataclass as p_dataclass

from .models.context import Stage
from .models.profile import InstallationProfile
from .output import error, warn


@p_dataclass
class Arguments:
	config: Path | None = None
	mountpoint: Path = Path('/mnt')
	resume_from: str | None = None
	skip_ntp: bool = False
	silent: bool = False
	dry_run: bool = False
	debug: bool = False

	@property
	def resume_stage(self) -> Stage | None:
		if self.resume_from is None:
			return None
		return Stage(self.resume_from)


@dataclass
class ArchstrapConfig:
	version: str | None = None
	disk: Path | None = None
	profile: InstallationProfile | None = None

	def safe_json(self) -> dict[str, Any]:
		config: dict[str, Any] = {
			'version': self.version,
			'disk': str(self.disk) if self.disk else None,
		}

		if self.profile:
			config.update(self.profile.json())

		return config

	@classmethod
	def from_config(cls, args_config: dict[str, Any]) -> 'ArchstrapConfig':
		"""
		Profile keys live at the top level of the configuration file next
		to the optional ``disk`` entry. A file without any profile keys
		leaves the profile to be asked for interactively.
		"""
		arch_config = ArchstrapConfig()

		if disk := args_config.get('disk', None):
			arch_config.disk = Path(disk)

		profile_keys = InstallationProfile.model_fields.keys()
		if any(key in args_config for key in profile_keys):
			arch_config.profile = InstallationProfile.parse_arg(args_config)

		return arch_config


class ConfigHandler:
	def __init__(self, argv: list[str] | None = None) -> None:
		self._parser: ArgumentParser = self._define_arguments()
		args: Arguments = self._parse_args(argv)
		self._args = args

		config = self._parse_config()

		try:
			self._config = ArchstrapConfig.from_config(config)
			self._config.version = self._get_version()
		except ValueError as err:
			warn(str(err))
			exit(1)

	@property
	def config(self) -> ArchstrapConfig:
		return self._config

	@property
	def args(self) -> Arguments:
		return self._args

	def print_help(self) -> None:
		self._parser.print_help()

	def _get_version(self) -> str:
		try:
			return version('archstrap')
		except PackageNotFoundError:
			return 'archstrap version not found'

	def _define_arguments(self) -> ArgumentParser:
		parser = ArgumentParser(prog='archstrap', formatter_class=argparse.ArgumentDefaultsHelpFormatter)
		parser.add_argument(
			'-v',
			'--version',
			action='version',
			default=False,
			version='%(prog)s ' + self._get_version(),
		)
		parser.add_argument(
			'--config',
			type=Path,
			nargs='?',
			default=None,
			help='JSON configuration file holding the installation profile and optionally the target disk',
		)
		parser.add_argument(
			'--mountpoint',
			type=Path,
			nargs='?',
			default=Path('/mnt'),
			help='Define an alternate mount point for installation',
		)
		parser.add_argument(
			'--resume-from',
			choices=[stage.value for stage in Stage.ordered()],
			default=None,
			help='Restart a failed installation at the given stage using the saved state',
		)
		parser.add_argument(
			'--skip-ntp',
			action='store_true',
			help='Do not enable NTP time synchronization before partitioning',
			default=False,
		)
		parser.add_argument(
			'--silent',
			action='store_true',
			default=False,
			help='Do not prompt for values given in the configuration file. The disk wipe confirmation is always asked',
		)
		parser.add_argument(
			'--dry-run',
			'--dry_run',
			action='store_true',
			default=False,
			help='Runs the preflight checks, prints and saves the plan and configuration, then exits',
		)
		parser.add_argument(
			'--debug',
			action='store_true',
			default=False,
			help='Prints debug messages to the console as well as to the log',
		)

		return parser

	def _parse_args(self, argv: list[str] | None = None) -> Arguments:
		argparse_args = vars(self._parser.parse_args(argv))
		args: Arguments = Arguments(**argparse_args)

		# Installation can't be silent if config is not passed
		if args.config is None:
			args.silent = False

		return args

	def _parse_config(self) -> dict[str, Any]:
		config: dict[str, Any] = {}

		if self._args.config is not None:
			config_data = self._read_file(self._args.config)

			try:
				config.update(json.loads(config_data))
			except json.JSONDecodeError as err:
				error(f'Could not parse {self._args.config}: {err}')
				exit(1)

		return self._cleanup_config(config)

	def _read_file(self, path: Path) -> str:
		if not path.exists():
			error(f'Could not find file {path}')
			exit(1)

		return path.read_text()

	def _cleanup_config(self, config: dict[str, Any]) -> dict[str, Any]:
		clean_args = {}
		for key, val in config.items():
			if isinstance(val, dict):
				val = self._cleanup_config(val)

			if val is not None:
				clean_args[key] = val

		return clean_args

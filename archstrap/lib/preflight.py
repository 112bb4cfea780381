from collections.abc import Callable
from pathlib import Path

from .disk.device_handler import DeviceHandler, device_handler
from .exceptions import (
	DiskError,
	InsufficientPrivilege,
	InvalidDevice,
	NoConnectivity,
	NotConfirmed,
	UnsupportedFirmware,
)
from .hardware import SysInfo
from .models.device import TargetDisk
from .networking import CONNECTIVITY_ATTEMPTS, CONNECTIVITY_HOST, has_connectivity
from .output import debug, header, success, warn

AFFIRMATIVE_TOKEN = 'yes'


class PreflightValidator:
	"""
	Read-only checks that have to pass before the target disk is touched.
	Checks run in a fixed order and the first failing one raises the
	matching :class:`PreflightError` subclass.
	"""

	def __init__(
		self,
		handler: DeviceHandler = device_handler,
		host: str = CONNECTIVITY_HOST,
		attempts: int = CONNECTIVITY_ATTEMPTS,
	) -> None:
		self._handler = handler
		self._host = host
		self._attempts = attempts

	def check_privilege(self) -> None:
		if not SysInfo.is_root():
			raise InsufficientPrivilege('This installer must be run as root')

	def check_firmware(self) -> None:
		if not SysInfo.has_uefi():
			raise UnsupportedFirmware('Not booted in UEFI mode. Only UEFI installations are supported.')

	def check_connectivity(self) -> None:
		header('Checking internet connection')

		if not has_connectivity(self._host, self._attempts):
			raise NoConnectivity(f'No internet connection ({self._host} unreachable after {self._attempts} attempts)')

		success('Internet connection is working')

	def check_device(self, path: Path) -> TargetDisk:
		if not self._handler.is_block_device(path):
			raise InvalidDevice(f'Invalid disk: {path} is not a block device')

		try:
			disk = self._handler.get_device(path)
		except DiskError as err:
			raise InvalidDevice(f'Invalid disk: {err}') from err

		debug(f'Target disk: {disk.json()}')
		return disk

	def confirm(self, disk: TargetDisk, ask: Callable[[str], str] = input) -> None:
		warn(f'WARNING: All data on {disk.path} ({disk.total_size.format_highest()}) will be erased!')

		answer = ask(f"Are you sure you want to continue? (Type '{AFFIRMATIVE_TOKEN}' to confirm): ")

		if answer != AFFIRMATIVE_TOKEN:
			raise NotConfirmed('Installation aborted by user')

	def check_environment(self) -> None:
		self.check_privilege()
		self.check_firmware()
		self.check_connectivity()

	def validate(self, disk_path: Path, ask: Callable[[str], str] = input) -> TargetDisk:
		self.check_environment()
		disk = self.check_device(disk_path)
		self.confirm(disk, ask)
		return disk

import os
from functools import cached_property
from pathlib import Path

from .output import debug

EFI_VARS_PATH = Path('/sys/firmware/efi/efivars')


class _SysInfo:
	@cached_property
	def mem_info(self) -> dict[str, int]:
		"""
		Returns system memory information
		"""
		mem_info_path = Path('/proc/meminfo')
		mem_info: dict[str, int] = {}

		with mem_info_path.open() as file:
			for line in file:
				key, value = line.strip().split(':')
				num = value.split()[0]
				mem_info[key] = int(num)

		return mem_info

	def mem_info_by_key(self, key: str) -> int:
		return self.mem_info[key]


_sys_info = _SysInfo()


class SysInfo:
	@staticmethod
	def has_uefi() -> bool:
		return EFI_VARS_PATH.is_dir()

	@staticmethod
	def is_root() -> bool:
		return os.geteuid() == 0

	@staticmethod
	def mem_total() -> int:
		"""
		Total installed memory in kB, as reported by /proc/meminfo
		"""
		return _sys_info.mem_info_by_key('MemTotal')

	@staticmethod
	def mem_total_mib() -> int:
		mib = SysInfo.mem_total() // 1024
		debug(f'Memory detected: {mib} MiB')
		return mib

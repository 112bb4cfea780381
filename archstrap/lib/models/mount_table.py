from dataclasses import dataclass, field
from pathlib import Path
from typing import TypedDict

from ..exceptions import DiskError
from .device import FilesystemType, PartitionRole


class _MountEntrySerialization(TypedDict):
	role: str
	dev_path: str
	mountpoint: str
	fs_type: str


@dataclass(frozen=True)
class MountEntry:
	role: PartitionRole
	dev_path: Path
	mountpoint: Path
	fs_type: FilesystemType

	def json(self) -> _MountEntrySerialization:
		return {
			'role': self.role.value,
			'dev_path': str(self.dev_path),
			'mountpoint': str(self.mountpoint),
			'fs_type': self.fs_type.value,
		}

	@classmethod
	def parse_arg(cls, arg: _MountEntrySerialization) -> 'MountEntry':
		return MountEntry(
			role=PartitionRole(arg['role']),
			dev_path=Path(arg['dev_path']),
			mountpoint=Path(arg['mountpoint']),
			fs_type=FilesystemType(arg['fs_type']),
		)

	def table_data(self) -> dict[str, str]:
		return {
			'Role': self.role.value,
			'Device': str(self.dev_path),
			'Mountpoint': str(self.mountpoint),
			'FS type': self.fs_type.value,
		}


@dataclass
class MountTable:
	"""
	Mounted partitions of the target disk, in the order they were mounted.
	Root always comes first since the EFI mountpoint lives beneath it.
	"""

	entries: list[MountEntry] = field(default_factory=list)

	_REQUIRED = (PartitionRole.ROOT, PartitionRole.EFI)

	def __len__(self) -> int:
		return len(self.entries)

	def add(self, entry: MountEntry) -> None:
		if entry.role not in self._REQUIRED:
			raise DiskError(f'{entry.role.value} partitions are not mounted')

		if self.get(entry.role) is not None:
			raise DiskError(f'A {entry.role.value} mount is already recorded')

		if entry.role == PartitionRole.EFI and self.get(PartitionRole.ROOT) is None:
			raise DiskError('The root partition has to be mounted before the EFI partition')

		self.entries.append(entry)

	def get(self, role: PartitionRole) -> MountEntry | None:
		for entry in self.entries:
			if entry.role == role:
				return entry
		return None

	@property
	def root(self) -> MountEntry:
		if entry := self.get(PartitionRole.ROOT):
			return entry
		raise DiskError('No root partition has been mounted')

	@property
	def efi(self) -> MountEntry:
		if entry := self.get(PartitionRole.EFI):
			return entry
		raise DiskError('No EFI partition has been mounted')

	def is_complete(self) -> bool:
		return len(self.entries) == len(self._REQUIRED) and all(self.get(r) for r in self._REQUIRED)

	def json(self) -> list[_MountEntrySerialization]:
		return [e.json() for e in self.entries]

	@classmethod
	def parse_arg(cls, arg: list[_MountEntrySerialization]) -> 'MountTable':
		table = MountTable()
		for entry in arg:
			table.add(MountEntry.parse_arg(entry))
		return table

from __future__ import annotations

import math
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypedDict

if sys.version_info >= (3, 12):
	from typing import override
else:
	from typing_extensions import override

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from ..exceptions import DiskError

# Block devices whose kernel name ends in a digit get their partitions
# suffixed with a 'p' infix, e.g. /dev/nvme0n1 -> /dev/nvme0n1p1
_PARTITION_INFIX_PATTERN = re.compile(r'nvme|mmcblk|loop')


class Unit(Enum):
	B = 1
	kB = 1000
	MB = 1000**2
	GB = 1000**3
	TB = 1000**4

	KiB = 1024
	MiB = 1024**2
	GiB = 1024**3
	TiB = 1024**4

	sectors = 'sectors'


_BINARY_UNITS = (Unit.B, Unit.KiB, Unit.MiB, Unit.GiB, Unit.TiB)


class _SectorSizeSerialization(TypedDict):
	value: int
	unit: str


@dataclass
class SectorSize:
	value: int
	unit: Unit

	def __post_init__(self) -> None:
		if self.unit == Unit.sectors:
			raise ValueError('Unit type sector not allowed for SectorSize')

	@staticmethod
	def default() -> SectorSize:
		return SectorSize(512, Unit.B)

	def json(self) -> _SectorSizeSerialization:
		return {'value': self.value, 'unit': self.unit.name}

	@classmethod
	def parse_args(cls, arg: _SectorSizeSerialization) -> SectorSize:
		return SectorSize(arg['value'], Unit[arg['unit']])

	def normalize(self) -> int:
		return int(self.value * self.unit.value)


class _SizeSerialization(TypedDict):
	value: int
	unit: str
	sector_size: _SectorSizeSerialization


@dataclass
class Size:
	"""
	A byte exact amount of disk space. Arithmetic and comparisons work on
	the normalized byte count, so sizes in different units mix freely.
	"""

	value: int
	unit: Unit
	sector_size: SectorSize = field(default_factory=SectorSize.default)

	def __post_init__(self) -> None:
		if not isinstance(self.sector_size, SectorSize):
			raise ValueError('sector size must be of type SectorSize')

	def json(self) -> _SizeSerialization:
		return {
			'value': self.value,
			'unit': self.unit.name,
			'sector_size': self.sector_size.json(),
		}

	@classmethod
	def parse_args(cls, size_arg: _SizeSerialization) -> Size:
		return Size(size_arg['value'], Unit[size_arg['unit']], SectorSize.parse_args(size_arg['sector_size']))

	def _bytes(self) -> int:
		if self.unit == Unit.sectors:
			return self.value * self.sector_size.normalize()
		return int(self.value * self.unit.value)

	def _from_bytes(self, value: int) -> Size:
		return Size(abs(value), Unit.B, self.sector_size)

	def convert(self, target_unit: Unit, sector_size: SectorSize | None = None) -> Size:
		if self.unit == target_unit:
			return self

		if target_unit == Unit.sectors:
			if sector_size is None:
				raise ValueError('If target has unit sector, a sector size must be provided')
			return Size(math.ceil(self._bytes() / sector_size.value), Unit.sectors, sector_size)

		return Size(self._bytes() // target_unit.value, target_unit, self.sector_size)

	def format_highest(self) -> str:
		"""
		Formats the size in the largest binary unit that keeps the value
		at or above one, with a single decimal: 60926 MiB -> '59.5 GiB'
		"""
		value = float(self._bytes())
		unit = Unit.B

		for candidate in _BINARY_UNITS[1:]:
			if value < 1024:
				break
			value /= 1024
			unit = candidate

		formatted = f'{value:.1f}'.removesuffix('.0')
		return f'{formatted} {unit.name}'

	def align(self) -> Size:
		"""
		Rounds down to the previous MiB boundary
		"""
		return self._from_bytes(self._bytes() - self._bytes() % Unit.MiB.value)

	def gpt_end(self) -> Size:
		"""
		The last MiB of a GPT disk holds the backup partition table
		"""
		return self - Size(1, Unit.MiB, self.sector_size)

	def __sub__(self, other: Size) -> Size:
		return self._from_bytes(self._bytes() - other._bytes())

	def __add__(self, other: Size) -> Size:
		return self._from_bytes(self._bytes() + other._bytes())

	def __lt__(self, other: Size) -> bool:
		return self._bytes() < other._bytes()

	def __le__(self, other: Size) -> bool:
		return self._bytes() <= other._bytes()

	def __gt__(self, other: Size) -> bool:
		return self._bytes() > other._bytes()

	def __ge__(self, other: Size) -> bool:
		return self._bytes() >= other._bytes()

	@override
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Size):
			return NotImplemented
		return self._bytes() == other._bytes()


class FilesystemType(Enum):
	Btrfs = 'btrfs'
	Ext4 = 'ext4'
	Fat32 = 'fat32'
	Xfs = 'xfs'
	LinuxSwap = 'linux-swap'

	@classmethod
	def root_choices(cls) -> list[FilesystemType]:
		return [cls.Ext4, cls.Xfs, cls.Btrfs]

	@property
	def fs_type_mount(self) -> str:
		match self:
			case FilesystemType.Fat32:
				return 'vfat'
			case _:
				return self.value

	@property
	def parted_value(self) -> str:
		return self.value + '(v1)' if self == FilesystemType.LinuxSwap else self.value

	@property
	def installation_pkg(self) -> str | None:
		match self:
			case FilesystemType.Btrfs:
				return 'btrfs-progs'
			case FilesystemType.Xfs:
				return 'xfsprogs'
			case _:
				return None


class PartitionFlag(Enum):
	ESP = 'esp'
	SWAP = 'swap'

	@property
	def parted_name(self) -> str:
		"""
		Name of the matching ``parted.PARTITION_*`` constant
		"""
		return f'PARTITION_{self.name}'


class PartitionRole(Enum):
	EFI = 'efi'
	SWAP = 'swap'
	ROOT = 'root'


class _PartitionSpecSerialization(TypedDict):
	role: str
	number: int
	name: str
	start: _SizeSerialization
	size: _SizeSerialization
	fs_type: str
	mountpoint: str | None
	flags: list[str]
	dev_path: str | None


@dataclass
class PartitionSpec:
	role: PartitionRole
	number: int
	name: str
	start: Size
	length: Size
	fs_type: FilesystemType
	flags: list[PartitionFlag] = field(default_factory=list)
	mountpoint: Path | None = None

	# only set once the partition exists on the device
	dev_path: Path | None = None

	@property
	def end(self) -> Size:
		return self.start + self.length

	@property
	def safe_dev_path(self) -> Path:
		if self.dev_path is None:
			raise ValueError('Device path was not set')
		return self.dev_path

	@property
	def relative_mountpoint(self) -> Path:
		"""
		Will return the relative path based on the anchor
		e.g. Path('/boot/efi') -> Path('boot/efi')
		"""
		if self.mountpoint:
			return self.mountpoint.relative_to(self.mountpoint.anchor)

		raise ValueError('Mountpoint is not specified')

	def json(self) -> _PartitionSpecSerialization:
		return {
			'role': self.role.value,
			'number': self.number,
			'name': self.name,
			'start': self.start.json(),
			'size': self.length.json(),
			'fs_type': self.fs_type.value,
			'mountpoint': str(self.mountpoint) if self.mountpoint else None,
			'flags': [f.value for f in self.flags],
			'dev_path': str(self.dev_path) if self.dev_path else None,
		}

	def table_data(self) -> dict[str, str]:
		"""
		Called for displaying data in table format
		"""
		return {
			'Nr': str(self.number),
			'Device': str(self.dev_path) if self.dev_path else '',
			'Role': self.role.value,
			'Start': f'{self.start.convert(Unit.MiB).value} MiB',
			'End': f'{self.end.convert(Unit.MiB).value} MiB',
			'Size': self.length.format_highest(),
			'FS type': self.fs_type.value,
			'Mountpoint': str(self.mountpoint) if self.mountpoint else '',
			'Flags': ', '.join([f.value for f in self.flags]),
		}


class _TargetDiskSerialization(TypedDict):
	path: str
	size: _SizeSerialization
	model: str | None
	transport: str | None


@dataclass(frozen=True)
class TargetDisk:
	path: Path
	total_size: Size
	sector_size: SectorSize = field(default_factory=SectorSize.default)
	model: str | None = None
	transport: str | None = None

	@property
	def is_nvme(self) -> bool:
		return _PARTITION_INFIX_PATTERN.search(self.path.name) is not None

	@property
	def partition_prefix(self) -> str:
		return partition_prefix(self.path)

	def partition_path(self, number: int) -> Path:
		return Path(f'{self.partition_prefix}{number}')

	@classmethod
	def from_lsblk(cls, info: LsblkInfo) -> TargetDisk:
		return TargetDisk(
			path=info.path,
			total_size=info.size,
			sector_size=SectorSize(info.log_sec, Unit.B),
			model=info.model.strip() if info.model else None,
			transport=info.tran,
		)

	def json(self) -> _TargetDiskSerialization:
		return {
			'path': str(self.path),
			'size': self.total_size.json(),
			'model': self.model,
			'transport': self.transport,
		}

	def table_data(self) -> dict[str, str]:
		return {
			'Path': str(self.path),
			'Size': self.total_size.format_highest(),
			'Model': self.model or '',
			'Transport': self.transport or '',
		}


def partition_prefix(dev_path: Path | str) -> str:
	dev_path = str(dev_path)

	if _PARTITION_INFIX_PATTERN.search(Path(dev_path).name):
		return f'{dev_path}p'

	return dev_path


class _PartitionPlanSerialization(TypedDict):
	disk: _TargetDiskSerialization
	partitions: list[_PartitionSpecSerialization]


@dataclass
class PartitionPlan:
	disk: TargetDisk
	partitions: list[PartitionSpec] = field(default_factory=list)

	_ROLE_ORDER = (PartitionRole.EFI, PartitionRole.SWAP, PartitionRole.ROOT)

	def by_role(self, role: PartitionRole) -> PartitionSpec:
		for part in self.partitions:
			if part.role == role:
				return part

		raise DiskError(f'Partition plan has no {role.value} partition')

	@property
	def efi(self) -> PartitionSpec:
		return self.by_role(PartitionRole.EFI)

	@property
	def swap(self) -> PartitionSpec:
		return self.by_role(PartitionRole.SWAP)

	@property
	def root(self) -> PartitionSpec:
		return self.by_role(PartitionRole.ROOT)

	def validate(self) -> None:
		"""
		Checks that the plan holds exactly the EFI, swap and root partitions
		in that order, that they are contiguous and strictly increasing and
		that the last one fits on the disk.
		"""
		roles = tuple(p.role for p in self.partitions)

		if roles != self._ROLE_ORDER:
			raise DiskError(f'Unexpected partition order: {[r.value for r in roles]}')

		numbers = [p.number for p in self.partitions]
		if numbers != list(range(1, len(self.partitions) + 1)):
			raise DiskError(f'Partitions must be numbered consecutively from 1: {numbers}')

		first = self.partitions[0]
		if first.start < Size(1, Unit.MiB, first.start.sector_size):
			raise DiskError('The first partition must start at or after 1 MiB')

		previous: PartitionSpec | None = None

		for part in self.partitions:
			if part.length <= Size(0, Unit.B, part.length.sector_size):
				raise DiskError(f'Partition {part.number} ({part.role.value}) has no space')

			if previous is not None and part.start != previous.end:
				raise DiskError(
					f'Partition {part.number} starts at {part.start.convert(Unit.B).value} B '
					f'but partition {previous.number} ends at {previous.end.convert(Unit.B).value} B'
				)

			previous = part

		last = self.partitions[-1]
		if last.end > self.disk.total_size:
			raise DiskError(
				f'Partition plan ends at {last.end.format_highest()} which exceeds '
				f'the capacity of {self.disk.path} ({self.disk.total_size.format_highest()})'
			)

	def json(self) -> _PartitionPlanSerialization:
		return {
			'disk': self.disk.json(),
			'partitions': [p.json() for p in self.partitions],
		}


class LsblkInfo(BaseModel):
	name: str
	path: Path
	log_sec: int = Field(alias='log-sec')
	size: Size
	type: str | None
	model: str | None = None
	tran: str | None = None
	fstype: str | None = None
	mountpoints: list[Path] = Field(default_factory=list)
	children: list[LsblkInfo] = Field(default_factory=list)

	@field_validator('size', mode='before')
	@classmethod
	def convert_size(cls, v: int, info: ValidationInfo) -> Size:
		sector_size = SectorSize(info.data['log_sec'], Unit.B)
		return Size(v, Unit.B, sector_size)

	@field_validator('mountpoints', mode='before')
	@classmethod
	def remove_none(cls, v: list[Path | None] | None) -> list[Path]:
		if v is None:
			return []
		return [item for item in v if item is not None]

	def is_disk(self) -> bool:
		return self.type == 'disk'

	@classmethod
	def fields(cls) -> list[str]:
		return [field.alias or name for name, field in cls.model_fields.items() if name != 'children']

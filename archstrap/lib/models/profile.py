import re
from functools import cache
from typing import Any
from zoneinfo import available_timezones

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .device import FilesystemType

# Placeholder credentials; the operator is told to change them after first boot
DEFAULT_PASSWORD = 'password'

_HOSTNAME_LABEL = re.compile(r'^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$')
_USERNAME = re.compile(r'^[a-z_][a-z0-9_-]*\$?$')
_LOCALE = re.compile(r'^[a-zA-Z]{2,3}(_[A-Z0-9]{2,3})?(\.[A-Za-z0-9-]+)?(@[a-z]+)?$')


@cache
def list_timezones() -> frozenset[str]:
	"""
	Zone names of the IANA time zone database, the same names found
	under /usr/share/zoneinfo on the live medium and the new system.
	"""
	return frozenset(available_timezones())


class InstallationProfile(BaseModel):
	"""
	Operator supplied settings for the new system. Collected once,
	before anything is written to disk, and immutable afterwards.
	"""

	model_config = ConfigDict(frozen=True, extra='forbid')

	timezone: str = 'UTC'
	locale: str = 'en_US.UTF-8'
	hostname: str = 'archlinux'
	username: str = 'user'
	root_fs: FilesystemType = FilesystemType.Ext4
	packages: list[str] = Field(default_factory=list)

	@field_validator('timezone')
	@classmethod
	def check_timezone(cls, v: str) -> str:
		if v not in list_timezones():
			raise ValueError(f'Invalid timezone: {v!r} (not in the IANA time zone database, e.g. Europe/London or UTC)')
		return v

	@field_validator('locale')
	@classmethod
	def check_locale(cls, v: str) -> str:
		if not _LOCALE.match(v):
			raise ValueError(f'Invalid locale: {v!r} (expected e.g. en_US.UTF-8)')
		return v

	@field_validator('hostname')
	@classmethod
	def check_hostname(cls, v: str) -> str:
		if len(v) > 253 or not all(_HOSTNAME_LABEL.match(label) for label in v.split('.')):
			raise ValueError(f'Invalid hostname: {v!r}')
		return v

	@field_validator('username')
	@classmethod
	def check_username(cls, v: str) -> str:
		if len(v) > 32 or not _USERNAME.match(v) or v == 'root':
			raise ValueError(f'Invalid username: {v!r}')
		return v

	@field_validator('root_fs')
	@classmethod
	def check_root_fs(cls, v: FilesystemType) -> FilesystemType:
		if v not in FilesystemType.root_choices():
			raise ValueError(f'Unsupported root filesystem: {v.value}')
		return v

	@property
	def locale_charset(self) -> str:
		"""
		The charset column used in /etc/locale.gen, e.g. UTF-8 for en_US.UTF-8
		"""
		if '.' in self.locale:
			return self.locale.split('.', 1)[1].split('@', 1)[0]
		return 'ISO-8859-1'

	def json(self) -> dict[str, Any]:
		return self.model_dump(mode='json')

	@classmethod
	def parse_arg(cls, arg: dict[str, Any]) -> 'InstallationProfile':
		keys = cls.model_fields.keys()
		return cls.model_validate({k: v for k, v in arg.items() if k in keys})

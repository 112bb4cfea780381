from pathlib import Path

from pydantic import BaseModel

from ..exceptions import DiskError, SysCallError
from ..general import SysCommand
from ..models.device import LsblkInfo
from ..output import debug, warn


class LsblkOutput(BaseModel):
	blockdevices: list[LsblkInfo]


def _fetch_lsblk_info(
	dev_path: Path | str | None = None,
	nodeps: bool = False,
) -> LsblkOutput:
	cmd = ['lsblk', '--json', '--bytes', '--paths', '--output', ','.join(LsblkInfo.fields())]

	if nodeps:
		cmd.append('--nodeps')

	if dev_path:
		cmd.append(str(dev_path))

	try:
		worker = SysCommand(cmd)
	except SysCallError as err:
		# Get the output minus the message/info from lsblk if it returns a non-zero exit code.
		if err.worker_log:
			debug(f'Error calling lsblk: {err.worker_log.decode()}')

		if dev_path:
			raise DiskError(f'Failed to read disk "{dev_path}" with lsblk')

		raise err

	output = worker.output(remove_cr=False)
	return LsblkOutput.model_validate_json(output)


def get_lsblk_info(dev_path: Path | str) -> LsblkInfo:
	infos = _fetch_lsblk_info(dev_path)

	if infos.blockdevices:
		return infos.blockdevices[0]

	raise DiskError(f'lsblk failed to retrieve information for "{dev_path}"')


def list_disks() -> list[LsblkInfo]:
	"""
	Whole disks only; loop devices (the live medium squashfs) are left out
	"""
	return [
		info
		for info in _fetch_lsblk_info(nodeps=True).blockdevices
		if info.is_disk()
	]


def iter_partitions(info: LsblkInfo) -> list[LsblkInfo]:
	partitions = []
	for child in info.children:
		partitions.append(child)
		partitions += iter_partitions(child)
	return partitions


def disk_layouts() -> str:
	try:
		lsblk_output = _fetch_lsblk_info()
	except SysCallError as err:
		warn(f'Could not return disk layouts: {err}')
		return ''

	return lsblk_output.model_dump_json(indent=4)


def umount(mountpoint: Path, recursive: bool = False) -> None:
	cmd = ['umount']

	if recursive:
		cmd.append('-R')

	debug(f'Unmounting mountpoint: {mountpoint}')

	try:
		SysCommand(cmd + [str(mountpoint)])
	except SysCallError as err:
		raise DiskError(f'Could not unmount {mountpoint}: {err.message}') from err

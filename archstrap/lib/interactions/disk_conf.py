from pathlib import Path

from ..disk.utils import list_disks
from ..exceptions import DiskError
from ..models.device import LsblkInfo, TargetDisk
from ..output import FormattedOutput, info, warn
from .general_conf import Prompt


def select_disk(disks: list[LsblkInfo] | None = None, ask: Prompt = input) -> Path:
	"""
	Lists the available disks and asks for the device path of one of them.
	"""
	if disks is None:
		disks = list_disks()

	if not disks:
		raise DiskError('No disks available to install to')

	targets = [TargetDisk.from_lsblk(d) for d in disks]
	paths = [str(t.path) for t in targets]

	info('Available disks:')
	info(FormattedOutput.as_table(targets))

	while True:
		selected = ask('Enter the disk to install to (e.g. /dev/sda): ').strip()

		if selected in paths:
			return Path(selected)

		warn(f'"{selected}" is not one of the listed disks')

from .device_handler import DeviceHandler, device_handler
from .layout import minimum_disk_size, suggest_partition_plan, swap_size_mib
from .sequencer import DiskSequencer
from .utils import disk_layouts, get_lsblk_info, list_disks, umount

__all__ = [
	'DeviceHandler',
	'DiskSequencer',
	'device_handler',
	'disk_layouts',
	'get_lsblk_info',
	'list_disks',
	'minimum_disk_size',
	'suggest_partition_plan',
	'swap_size_mib',
	'umount',
]

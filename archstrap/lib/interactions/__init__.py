from .disk_conf import select_disk
from .general_conf import ask_profile, get_input

__all__ = [
	'ask_profile',
	'get_input',
	'select_disk',
]

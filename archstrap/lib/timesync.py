import time

from .exceptions import RequirementError, SysCallError
from .general import SysCommand
from .output import header, info, warn

SYNC_WAIT_SECONDS = 30


def enable_ntp() -> None:
	header('Updating system clock')

	try:
		SysCommand('timedatectl set-ntp true')
	except SysCallError as err:
		raise RequirementError(f'Could not enable time synchronization: {err.message}') from err


def is_synchronized() -> bool:
	time_val = SysCommand('timedatectl show --property=NTPSynchronized --value').decode()
	return time_val.strip() == 'yes'


def wait_for_sync(timeout: float = SYNC_WAIT_SECONDS, interval: float = 1) -> bool:
	"""
	Waits a bounded time for the clock to report NTP sync. An unsynchronized
	clock is only warned about since pacstrap may still succeed.
	"""
	info('Waiting for time sync (timedatectl show) to complete.')

	started_wait = time.time()
	while time.time() - started_wait < timeout:
		if is_synchronized():
			return True
		time.sleep(interval)

	warn('Time synchronization did not complete, package signature checks may fail if the clock is off')
	return False

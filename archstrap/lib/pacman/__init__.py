import time
from pathlib import Path

from ..exceptions import PackageError, SysCallError
from ..general import SysCommand
from ..output import info, warn

PACMAN_DB_LOCK = Path('/var/lib/pacman/db.lck')
LOCK_GRACE_PERIOD = 60 * 10


class Pacman:
	def __init__(self, target: Path):
		self.target = target

	@staticmethod
	def wait_for_lock(lock: Path = PACMAN_DB_LOCK, grace_period: float = LOCK_GRACE_PERIOD) -> None:
		"""
		Protects us from colliding with other running pacman sessions on the
		live system. The grace period is 10 minutes before giving up.
		"""
		if lock.exists():
			warn('Pacman is already running, waiting maximum 10 minutes for it to terminate.')

		started = time.time()
		while lock.exists():
			time.sleep(0.25)

			if time.time() - started > grace_period:
				raise PackageError('Pre-existing pacman lock never exited. Please clean up any existing pacman sessions.')

	def strap(self, packages: str | list[str]) -> None:
		if isinstance(packages, str):
			packages = [packages]

		info(f'Installing packages: {packages}')

		self.wait_for_lock()

		cmd = ['pacstrap']

		# -K initializes an empty keyring in the target, only wanted once
		if not (self.target / 'etc' / 'pacman.d' / 'gnupg').exists():
			cmd.append('-K')

		try:
			SysCommand([*cmd, str(self.target), *packages], peek_output=True)
		except SysCallError as err:
			raise PackageError(f'Pacstrap failed, see the log or above message for error details: {err.message}') from err

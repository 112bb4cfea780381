class RequirementError(Exception):
	pass


class SysCallError(Exception):
	def __init__(self, message: str, exit_code: int | None = None, worker_log: bytes = b'') -> None:
		super().__init__(message)
		self.message = message
		self.exit_code = exit_code
		self.worker_log = worker_log


class PreflightError(Exception):
	"""
	Raised by the preflight validator before anything on the host
	or the target disk has been modified. Always safe to abort from.
	"""


class InsufficientPrivilege(PreflightError):
	pass


class UnsupportedFirmware(PreflightError):
	pass


class NoConnectivity(PreflightError):
	pass


class InvalidDevice(PreflightError):
	pass


class NotConfirmed(PreflightError):
	pass


class DiskError(Exception):
	pass


class UnknownFilesystemFormat(DiskError):
	pass


class BootstrapError(Exception):
	pass


class PackageError(BootstrapError):
	pass


class FstabError(BootstrapError):
	pass


class ChrootError(BootstrapError):
	pass

"""Guided UEFI Arch Linux installer: preflight, partitioning and base system bootstrap."""

import sys
import traceback

from .lib.args import ConfigHandler
from .lib.disk.utils import disk_layouts
from .lib.hardware import SysInfo
from .lib.output import FormattedOutput, debug, error, info, log, logger, warn
from .scripts.guided import guided

EXIT_INTERRUPTED = 130


def _log_sys_info() -> None:
	# Log hardware and disk state before starting the installation, this assists in troubleshooting
	debug(f'UEFI mode: {SysInfo.has_uefi()}; running as root: {SysInfo.is_root()}')
	debug(f'Memory statistics: {SysInfo.mem_total()} kB total installed')
	debug(f'Disk states before installing:\n{disk_layouts()}')


def main(argv: list[str] | None = None) -> int:
	"""
	This can either be run as the installed application: archstrap
	OR straight as a module: python -m archstrap
	"""
	handler = ConfigHandler(argv)

	if handler.args.debug:
		logger.verbose = True
		warn(f'--debug mode writes the full configuration to {logger.path}')

	_log_sys_info()

	guided(handler)

	return 0


def run_as_a_module() -> None:
	rc = 0
	exc = None

	try:
		rc = main()
	except KeyboardInterrupt:
		error('\nInstallation interrupted')
		rc = EXIT_INTERRUPTED
	except Exception as e:
		exc = e

	if exc:
		err = ''.join(traceback.format_exception(exc))
		debug(err)
		error(f'{type(exc).__name__}: {exc}')

		text = (
			'archstrap experienced the above error. The full traceback and every executed\n'
			f'command are in the log directory "{logger.directory}".\n'
		)

		warn(text)
		rc = 1

	sys.exit(rc)


__all__ = [
	'FormattedOutput',
	'SysInfo',
	'debug',
	'disk_layouts',
	'error',
	'info',
	'log',
	'logger',
	'main',
	'run_as_a_module',
	'warn',
]

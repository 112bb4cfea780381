import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

_ANSI_COLORS = {
	'red': '31',
	'green': '32',
	'yellow': '33',
	'blue': '34',
	'white': '37',
	'gray': '38;5;246',
}


class FormattedOutput:
	@staticmethod
	def _record(o: Any) -> dict[str, Any]:
		if hasattr(o, 'table_data'):
			return o.table_data()
		if is_dataclass(o) and not isinstance(o, type):
			return asdict(o)
		return dict(vars(o))

	@classmethod
	def as_table(cls, obj: list[Any]) -> str:
		"""
		Renders a list of objects as a plain text table, one record per line.
		Objects provide their columns through ``table_data()``, dataclasses
		fall back to ``asdict``. Numeric cells are right aligned.
		"""
		records = [cls._record(o) for o in obj]

		widths: dict[str, int] = {}
		for record in records:
			for key, value in record.items():
				widths[key] = max(widths.get(key, len(key)), len(str(value)))

		lines = [' | '.join(key.ljust(width) for key, width in widths.items())]
		lines.append('-' * len(lines[0]))

		for record in records:
			cells = []
			for key, width in widths.items():
				value = str(record.get(key, ''))
				cells.append(value.rjust(width) if value.isnumeric() else value.ljust(width))
			lines.append(' | '.join(cells))

		return '\n'.join(lines) + '\n'


class Journald:
	@staticmethod
	def log(message: str, level: int = logging.DEBUG) -> None:
		try:
			import systemd.journal  # type: ignore[import-not-found]
		except ModuleNotFoundError:
			return None

		journal = logging.getLogger('archstrap')
		if not journal.handlers:
			handler = systemd.journal.JournalHandler()
			handler.setFormatter(logging.Formatter('[%(levelname)s]: %(message)s'))
			journal.addHandler(handler)
			journal.setLevel(logging.DEBUG)

		journal.log(level, message)


class Logger:
	"""
	Appends every message to ``install.log`` in the log directory. The
	directory also receives the command history, the saved configuration
	and the resume state.
	"""

	def __init__(self, path: Path = Path('/var/log/archstrap')) -> None:
		self._path = path
		self.verbose = False

	@property
	def path(self) -> Path:
		return self._path / 'install.log'

	@property
	def directory(self) -> Path:
		return self._path

	def _ensure_writable(self) -> None:
		wanted = self.path

		try:
			self._path.mkdir(exist_ok=True, parents=True)
			with wanted.open('a'):
				pass
		except PermissionError:
			self._path = Path('./').absolute()
			warn(f'Not enough permission to place log file at {wanted}, creating it in {self.path} instead')

	def log(self, level: int, content: str) -> None:
		self._ensure_writable()

		with self.path.open('a') as f:
			f.write(f'[{_timestamp()}] - {logging.getLevelName(level)} - {content}\n')


logger = Logger()


def _supports_color() -> bool:
	if sys.platform == 'win32' and 'ANSICON' not in os.environ:
		return False

	# isatty is not always implemented
	return hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()


def _stylize_output(text: str, fg: str, bold: bool = False) -> str:
	codes = [_ANSI_COLORS[fg]]
	if bold:
		codes.append('1')
	return f'\033[{";".join(codes)}m{text}\033[0m'


def _timestamp() -> str:
	return datetime.now(tz=UTC).strftime('%Y-%m-%d %H:%M:%S')


def info(*msgs: str, fg: str = 'white', bold: bool = False) -> None:
	log(*msgs, level=logging.INFO, fg=fg, bold=bold)


def debug(*msgs: str) -> None:
	log(*msgs, level=logging.DEBUG, fg='gray')


def warn(*msgs: str) -> None:
	log(*msgs, level=logging.WARNING, fg='yellow')


def error(*msgs: str) -> None:
	log(*msgs, level=logging.ERROR, fg='red')


def header(text: str) -> None:
	info(f'==> {text}', fg='blue', bold=True)


def step(text: str) -> None:
	info(f'--> {text}', fg='yellow')


def success(text: str) -> None:
	info(text, fg='green')


def log(*msgs: str, level: int = logging.INFO, fg: str = 'white', bold: bool = False) -> None:
	text = ' '.join(str(x) for x in msgs)

	logger.log(level, text)
	Journald.log(text, level=level)

	# Debug output stays in the log file unless --debug was given
	if level == logging.DEBUG and not logger.verbose:
		return

	if _supports_color():
		text = _stylize_output(text, fg, bold)

	stream = sys.stderr if level >= logging.ERROR else sys.stdout
	stream.write(text + '\n')
	stream.flush()

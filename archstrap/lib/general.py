from __future__ import annotations

import json
import os
import re
import shlex
import stat
import subprocess
import sys
import time
from enum import Enum
from pathlib import Path
from shutil import which
from types import TracebackType
from typing import Any

if sys.version_info >= (3, 12):
	from typing import override
else:
	from typing_extensions import override

from .exceptions import RequirementError, SysCallError
from .output import debug, logger

# https://stackoverflow.com/a/43627833/929999
_VT100_ESCAPE_REGEX = r'\x1B\[[?0-9;]*[a-zA-Z]'
_VT100_ESCAPE_REGEX_BYTES = _VT100_ESCAPE_REGEX.encode()


def locate_binary(name: str) -> str:
	if path := which(name):
		return path
	raise RequirementError(f'Binary {name} does not exist.')


def clear_vt100_escape_codes(data: bytes) -> bytes:
	return re.sub(_VT100_ESCAPE_REGEX_BYTES, b'', data)


def jsonify(obj: Any) -> Any:
	"""
	Converts objects into json.dumps() compatible nested dictionaries.
	"""
	if isinstance(obj, dict):
		return {key: jsonify(value) for key, value in obj.items()}
	if isinstance(obj, Enum):
		return obj.value
	if hasattr(obj, 'json'):
		# json() is a friendly name for json-helper, it should return
		# a dictionary representation of the object so that it can be
		# processed by the json library.
		return jsonify(obj.json())
	if isinstance(obj, list | set | tuple):
		return [jsonify(item) for item in obj]
	if isinstance(obj, Path):
		return str(obj)

	return obj


class JSON(json.JSONEncoder, json.JSONDecoder):
	@override
	def encode(self, o: Any) -> str:
		return super().encode(jsonify(o))


class SysCommandWorker:
	"""
	Runs a single external command to completion, collecting stdout and
	stderr into one trace log. Leaving the context with a non-zero exit
	code raises :class:`SysCallError`.
	"""

	def __init__(
		self,
		cmd: str | list[str],
		peek_output: bool | None = False,
		input_data: bytes | None = None,
	):
		cmd = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)

		if cmd and not cmd[0].startswith(('/', './')):
			cmd[0] = locate_binary(cmd[0])

		self.cmd = cmd
		self.peek_output = peek_output
		self.input_data = input_data

		self.exit_code: int | None = None
		self.trace_log = b''

	@override
	def __str__(self) -> str:
		return self.trace_log.decode('utf-8', errors='backslashreplace')

	def __enter__(self) -> SysCommandWorker:
		return self

	def __exit__(
		self,
		exc_type: type[BaseException] | None,
		exc_value: BaseException | None,
		traceback: TracebackType | None,
	) -> None:
		if exc_value is not None:
			debug(str(exc_value))
			return

		if self.exit_code != 0:
			raise SysCallError(
				f'{self.cmd} exited with abnormal exit code [{self.exit_code}]: {str(self)[-500:]}',
				self.exit_code,
				worker_log=self.trace_log,
			)

	def _peek(self, output: bytes) -> None:
		if self.peek_output:
			sys.stdout.write(clear_vt100_escape_codes(output).decode('utf-8', errors='backslashreplace'))
			sys.stdout.flush()

	def execute(self) -> None:
		_log_cmd(self.cmd)

		try:
			process = subprocess.Popen(
				self.cmd,
				stdin=subprocess.PIPE if self.input_data is not None else subprocess.DEVNULL,
				stdout=subprocess.PIPE,
				stderr=subprocess.STDOUT,
				# the standard locale keeps tool output parseable
				env={**os.environ, 'LC_ALL': 'C'},
			)
		except OSError as err:
			self.exit_code = 1
			self.trace_log = str(err).encode()
			return

		if self.input_data is not None and process.stdin:
			process.stdin.write(self.input_data)
			process.stdin.close()

		if process.stdout:
			for chunk in iter(process.stdout.readline, b''):
				self._peek(chunk)
				self.trace_log += chunk

		self.exit_code = process.wait()


class SysCommand:
	"""
	Executes ``cmd`` immediately on construction and blocks until it
	exits. Any non-zero exit status surfaces as :class:`SysCallError`.
	"""

	def __init__(
		self,
		cmd: str | list[str],
		peek_output: bool | None = False,
		input_data: bytes | None = None,
	):
		with SysCommandWorker(cmd, peek_output=peek_output, input_data=input_data) as session:
			self.session = session
			self.session.execute()

	@override
	def __repr__(self) -> str:
		return self.decode(strip=False)

	@property
	def exit_code(self) -> int | None:
		return self.session.exit_code

	def decode(self, encoding: str = 'utf-8', errors: str = 'backslashreplace', strip: bool = True) -> str:
		val = self.session.trace_log.decode(encoding, errors=errors)
		return val.strip() if strip else val

	def output(self, remove_cr: bool = True) -> bytes:
		if remove_cr:
			return self.session.trace_log.replace(b'\r\n', b'\n')
		return self.session.trace_log


def _log_cmd(cmd: list[str]) -> None:
	history_logfile = logger.directory / 'cmd_history.txt'
	created = not history_logfile.exists()

	try:
		with history_logfile.open('a') as cmd_log:
			cmd_log.write(f'{time.time()} {cmd}\n')

		if created:
			history_logfile.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)
	except (PermissionError, FileNotFoundError):
		# the log directory is created by the first logged message
		pass

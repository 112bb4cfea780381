from collections.abc import Callable

from pydantic import ValidationError

from ..models.device import FilesystemType
from ..models.profile import InstallationProfile
from ..output import header, warn

Prompt = Callable[[str], str]


def get_input(text: str, default: str | None = None, ask: Prompt = input) -> str:
	"""
	Asks for a single value. An empty answer keeps the default
	shown in brackets.
	"""
	prompt = f'{text} [{default}]: ' if default is not None else f'{text}: '
	value = ask(prompt).strip()

	if not value and default is not None:
		return default

	return value


def _ask_field(
	field: str,
	text: str,
	values: dict[str, object],
	ask: Prompt,
) -> None:
	while True:
		answer = get_input(text, str(values[field]), ask=ask)

		try:
			InstallationProfile.model_validate({**values, field: answer})
		except ValidationError as err:
			for e in err.errors():
				warn(e['msg'])
			continue

		values[field] = answer
		return


def ask_profile(preset: InstallationProfile | None = None, ask: Prompt = input) -> InstallationProfile:
	"""
	Walks through the profile settings one by one, each prefilled from the
	preset. Invalid answers are reported and asked again.
	"""
	preset = preset or InstallationProfile()
	values: dict[str, object] = preset.json()

	header('Installation profile')

	_ask_field('timezone', 'Enter timezone (e.g. Europe/London)', values, ask)
	_ask_field('locale', 'Enter locale', values, ask)
	_ask_field('hostname', 'Enter hostname', values, ask)
	_ask_field('username', 'Enter username', values, ask)

	choices = ', '.join(fs.value for fs in FilesystemType.root_choices())
	_ask_field('root_fs', f'Root filesystem ({choices})', values, ask)

	return InstallationProfile.model_validate(values)

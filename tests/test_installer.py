from pathlib import Path

import pytest
from pytest import MonkeyPatch

from archstrap.lib.exceptions import BootstrapError, ChrootError, FstabError, PackageError, SysCallError
from archstrap.lib.installer import Bootstrapper, Installer
from archstrap.lib.models.context import InstallContext
from archstrap.lib.models.device import FilesystemType, PartitionRole, Size, TargetDisk, Unit
from archstrap.lib.models.mount_table import MountEntry, MountTable
from archstrap.lib.models.profile import InstallationProfile
from archstrap.lib.pacman import Pacman


class FakeSysCommand:
	"""
	Records the commands handed to the executor. Output and failures are
	looked up by the name of the binary.
	"""

	calls: list[list[str]] = []
	outputs: dict[str, str] = {}
	failing: set[str] = set()
	seen_files: dict[str, str] = {}

	def __init__(self, cmd: str | list[str], peek_output: bool | None = False, **kwargs: object) -> None:
		cmd = cmd.split() if isinstance(cmd, str) else list(cmd)
		FakeSysCommand.calls.append(cmd)

		if cmd[0] == 'arch-chroot':
			script = Path(cmd[1]) / cmd[2].lstrip('/')
			FakeSysCommand.seen_files['setup.sh'] = script.read_text()
			FakeSysCommand.seen_files['mode'] = oct(script.stat().st_mode & 0o777)

		if cmd[0] in FakeSysCommand.failing:
			raise SysCallError(f'{cmd[0]} exited with abnormal exit code [1]', 1)

		self._output = FakeSysCommand.outputs.get(cmd[0], '')

	def decode(self, *args: object, strip: bool = True, **kwargs: object) -> str:
		return self._output.strip() if strip else self._output


@pytest.fixture
def syscommand(monkeypatch: MonkeyPatch, genfstab_fixture: Path) -> type[FakeSysCommand]:
	FakeSysCommand.calls = []
	FakeSysCommand.failing = set()
	FakeSysCommand.seen_files = {}
	FakeSysCommand.outputs = {'genfstab': genfstab_fixture.read_text()}

	monkeypatch.setattr('archstrap.lib.installer.SysCommand', FakeSysCommand)
	monkeypatch.setattr('archstrap.lib.pacman.SysCommand', FakeSysCommand)
	monkeypatch.setattr('archstrap.lib.disk.utils.SysCommand', FakeSysCommand)
	monkeypatch.setattr(Pacman, 'wait_for_lock', staticmethod(lambda *args, **kwargs: None))

	return FakeSysCommand


@pytest.fixture
def target(tmp_path: Path) -> Path:
	root = tmp_path / 'mnt'
	(root / 'etc').mkdir(parents=True)
	(root / 'boot' / 'efi').mkdir(parents=True)
	return root


def _mount_table(target: Path) -> MountTable:
	table = MountTable()
	table.add(MountEntry(PartitionRole.ROOT, Path('/dev/sda3'), target, FilesystemType.Ext4))
	table.add(MountEntry(PartitionRole.EFI, Path('/dev/sda1'), target / 'boot' / 'efi', FilesystemType.Fat32))
	return table


def test_package_selection(target: Path) -> None:
	profile = InstallationProfile(root_fs=FilesystemType.Xfs, packages=['git', 'vim'])
	installation = Installer(_mount_table(target), profile)

	assert installation.packages == [
		'base',
		'linux',
		'linux-firmware',
		'base-devel',
		'dhcpcd',
		'networkmanager',
		'sudo',
		'vim',
		'nano',
		'grub',
		'efibootmgr',
		'xfsprogs',
		'git',
	]


def test_pacstrap_initializes_keyring_once(syscommand: type[FakeSysCommand], target: Path) -> None:
	installation = Installer(_mount_table(target), InstallationProfile())

	installation.pacstrap()
	assert syscommand.calls[0][:3] == ['pacstrap', '-K', str(target)]

	(target / 'etc' / 'pacman.d' / 'gnupg').mkdir(parents=True)
	installation.pacstrap()
	assert syscommand.calls[1][:2] == ['pacstrap', str(target)]


def test_pacstrap_failure(syscommand: type[FakeSysCommand], target: Path) -> None:
	syscommand.failing.add('pacstrap')

	with pytest.raises(PackageError):
		Installer(_mount_table(target), InstallationProfile()).pacstrap()


def test_pacman_lock_timeout(tmp_path: Path) -> None:
	lock = tmp_path / 'db.lck'
	lock.touch()

	with pytest.raises(PackageError):
		Pacman.wait_for_lock(lock, grace_period=0)


def test_genfstab_appends_entries(syscommand: type[FakeSysCommand], target: Path, genfstab_fixture: Path) -> None:
	fstab = target / 'etc' / 'fstab'
	fstab.write_text('# Static information about the filesystems.\n')

	Installer(_mount_table(target), InstallationProfile()).genfstab()

	assert syscommand.calls == [['genfstab', '-U', str(target)]]
	assert fstab.read_text() == '# Static information about the filesystems.\n' + genfstab_fixture.read_text()


def test_genfstab_is_idempotent(syscommand: type[FakeSysCommand], target: Path) -> None:
	installation = Installer(_mount_table(target), InstallationProfile())
	fstab = target / 'etc' / 'fstab'

	installation.genfstab()
	first = fstab.read_text()

	installation.genfstab()
	assert fstab.read_text() == first

	entries = [line for line in first.splitlines() if line.startswith('UUID=')]
	assert len(entries) == 3


def test_genfstab_requires_uuid_entries(syscommand: type[FakeSysCommand], target: Path) -> None:
	syscommand.outputs['genfstab'] = '# /dev/sda3\n/dev/sda3\t/\text4\trw,relatime\t0 1\n'

	with pytest.raises(FstabError, match='/, /boot/efi'):
		Installer(_mount_table(target), InstallationProfile()).genfstab()

	assert not (target / 'etc' / 'fstab').exists()


def test_genfstab_failure(syscommand: type[FakeSysCommand], target: Path) -> None:
	syscommand.failing.add('genfstab')

	with pytest.raises(FstabError):
		Installer(_mount_table(target), InstallationProfile()).genfstab()


def test_setup_script_runs_in_chroot(syscommand: type[FakeSysCommand], target: Path) -> None:
	profile = InstallationProfile(hostname='workstation')
	Installer(_mount_table(target), profile).run_setup_script()

	assert syscommand.calls == [['arch-chroot', str(target), '/root/setup.sh']]
	assert 'workstation' in syscommand.seen_files['setup.sh']
	assert '--efi-directory=/boot/efi' in syscommand.seen_files['setup.sh']
	assert syscommand.seen_files['mode'] == '0o700'
	assert not (target / 'root' / 'setup.sh').exists()


def test_setup_script_failure(syscommand: type[FakeSysCommand], target: Path) -> None:
	syscommand.failing.add('arch-chroot')

	with pytest.raises(ChrootError):
		Installer(_mount_table(target), InstallationProfile()).run_setup_script()

	assert not (target / 'root' / 'setup.sh').exists()


def test_bootstrap(syscommand: type[FakeSysCommand], target: Path) -> None:
	ctx = InstallContext(
		mountpoint=target,
		disk=TargetDisk(Path('/dev/sda'), Size(64, Unit.GiB)),
		profile=InstallationProfile(),
		mount_table=_mount_table(target),
	)

	Bootstrapper().bootstrap(ctx)

	assert [c[0] for c in syscommand.calls] == ['pacstrap', 'genfstab', 'arch-chroot', 'umount']
	assert syscommand.calls[-1] == ['umount', '-R', str(target)]


def test_bootstrap_requires_mounts(syscommand: type[FakeSysCommand], target: Path) -> None:
	ctx = InstallContext(
		mountpoint=target,
		disk=TargetDisk(Path('/dev/sda'), Size(64, Unit.GiB)),
		profile=InstallationProfile(),
	)

	with pytest.raises(BootstrapError):
		Bootstrapper().bootstrap(ctx)

	assert syscommand.calls == []

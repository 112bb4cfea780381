from pathlib import Path

from .disk.utils import umount
from .exceptions import BootstrapError, ChrootError, FstabError, SysCallError
from .general import SysCommand
from .models.context import InstallContext
from .models.mount_table import MountTable
from .models.profile import DEFAULT_PASSWORD, InstallationProfile
from .output import debug, header, info, step, success, warn
from .pacman import Pacman
from .setup_script import render_setup_script

# Any package that the Installer() is responsible for
__packages__ = ['base', 'linux', 'linux-firmware', 'base-devel']

# Networking, privilege escalation, editors and the UEFI bootloader
__system_packages__ = ['dhcpcd', 'networkmanager', 'sudo', 'vim', 'nano', 'grub', 'efibootmgr']

SETUP_SCRIPT = Path('/root/setup.sh')


class Installer:
	def __init__(
		self,
		mount_table: MountTable,
		profile: InstallationProfile,
		base_packages: list[str] = [],
	):
		"""
		`Installer()` wraps the steps that populate the mounted root:
		pacstrap, fstab generation and commands run through arch-chroot.
		"""
		self.mount_table = mount_table
		self.profile = profile
		self.target: Path = mount_table.root.mountpoint
		self._base_packages = base_packages or __packages__[:]

		self.pacman = Pacman(self.target)

	@property
	def packages(self) -> list[str]:
		packages = [*self._base_packages, *__system_packages__]

		if fs_pkg := self.profile.root_fs.installation_pkg:
			packages.append(fs_pkg)

		for package in self.profile.packages:
			if package not in packages:
				packages.append(package)

		return packages

	def pacstrap(self) -> None:
		self.pacman.strap(self.packages)

	def _required_fstab_mountpoints(self) -> list[str]:
		return [
			str(Path('/') / entry.mountpoint.relative_to(self.target))
			for entry in self.mount_table.entries
		]

	def genfstab(self, flags: str = '-U') -> None:
		fstab_path = self.target / 'etc' / 'fstab'
		info(f'Updating {fstab_path}')

		try:
			gen_fstab = SysCommand(['genfstab', flags, str(self.target)]).decode(strip=False)
		except SysCallError as err:
			raise FstabError(f'Could not generate fstab, strapping in packages most likely failed (disk out of space?)\n Error: {err}') from err

		lines = gen_fstab.splitlines()
		entries = [line for line in lines if line.strip() and not line.lstrip().startswith('#')]

		keyed = {line.split()[1] for line in entries if line.startswith('UUID=') and len(line.split()) > 1}
		missing = [m for m in self._required_fstab_mountpoints() if m not in keyed]

		if missing:
			raise FstabError(f'genfstab produced no UUID entry for: {", ".join(missing)}')

		existing: set[str] = set()
		if fstab_path.is_file():
			existing = set(fstab_path.read_text().splitlines())

		if all(entry in existing for entry in entries):
			debug(f'{fstab_path} already holds all generated entries')
			return

		with open(fstab_path, 'a') as fp:
			for line in lines:
				if line in entries and line in existing:
					continue
				fp.write(f'{line}\n')

		if not fstab_path.is_file():
			raise FstabError('Could not create fstab file')

	def arch_chroot(self, cmd: list[str], peek_output: bool = False) -> SysCommand:
		return SysCommand(['arch-chroot', str(self.target), *cmd], peek_output=peek_output)

	def run_setup_script(self) -> None:
		script = render_setup_script(self.profile, efi_directory=self._efi_directory())
		host_path = self.target / SETUP_SCRIPT.relative_to('/')

		host_path.parent.mkdir(parents=True, exist_ok=True)
		host_path.write_text(script)
		host_path.chmod(0o700)

		debug(f'Second stage procedure written to {host_path}')

		try:
			self.arch_chroot([str(SETUP_SCRIPT)], peek_output=True)
		except SysCallError as err:
			raise ChrootError(f'System configuration inside the new root failed: {err.message}') from err
		finally:
			host_path.unlink(missing_ok=True)

	def _efi_directory(self) -> str:
		return str(Path('/') / self.mount_table.efi.mountpoint.relative_to(self.target))

	def umount(self) -> None:
		umount(self.target, recursive=True)


class Bootstrapper:
	"""
	Installs the base system onto the mounted root and configures it from
	inside. Expects the mount table produced by the disk sequencer.
	"""

	def bootstrap(self, ctx: InstallContext) -> None:
		if not ctx.mount_table.is_complete():
			raise BootstrapError(f'Refusing to bootstrap without a complete mount table: {ctx.mount_table.json()}')

		installation = Installer(ctx.mount_table, ctx.profile)

		header('Installing base system (this may take a while)')
		installation.pacstrap()

		header('Generating fstab')
		installation.genfstab()
		success('fstab generated')

		header('Configuring the system')
		step('Configuring system inside chroot...')
		installation.run_setup_script()

		header('Finishing installation')
		step('Unmounting partitions')
		installation.umount()

		success('Installation completed successfully!')
		warn(
			f"Both root and '{ctx.profile.username}' use the placeholder password '{DEFAULT_PASSWORD}'.",
			'Change them with passwd right after the first boot.',
		)

import shlex
import textwrap

from .models.profile import DEFAULT_PASSWORD, InstallationProfile

SERVICES = ['NetworkManager', 'dhcpcd']
SUDO_GROUP = 'wheel'
BOOTLOADER_ID = 'GRUB'


def hosts_file(hostname: str) -> str:
	return textwrap.dedent(f'''\
		127.0.0.1   localhost
		::1         localhost
		127.0.1.1   {hostname}.localdomain {hostname}
	''')


def locale_gen_entry(profile: InstallationProfile) -> str:
	return f'{profile.locale} {profile.locale_charset}'


def locale_conf(profile: InstallationProfile) -> str:
	return f'LANG={profile.locale}'


def render_setup_script(profile: InstallationProfile, efi_directory: str = '/boot/efi') -> str:
	"""
	Renders the second stage configuration procedure which runs inside the
	new root. Every profile value is shell quoted; the returned text has no
	side effects until it is executed.
	"""
	q = shlex.quote

	services = '\n'.join(f'systemctl enable {q(s)}' for s in SERVICES)
	sudoers = f'%{SUDO_GROUP} ALL=(ALL) ALL'

	# The heredoc delimiter is quoted so nothing inside it gets expanded
	return f'''#!/bin/bash
set -euo pipefail

echo {q(f'Setting timezone to {profile.timezone}...')}
ln -sf {q('/usr/share/zoneinfo/' + profile.timezone)} /etc/localtime
hwclock --systohc

echo "Configuring locale..."
printf '%s\\n' {q(locale_gen_entry(profile))} > /etc/locale.gen
locale-gen
printf '%s\\n' {q(locale_conf(profile))} > /etc/locale.conf

echo "Configuring network..."
printf '%s\\n' {q(profile.hostname)} > /etc/hostname
cat > /etc/hosts << 'ARCHSTRAP_HOSTS'
{hosts_file(profile.hostname)}ARCHSTRAP_HOSTS

{services}

echo "Creating user account..."
if ! id -u {q(profile.username)} > /dev/null 2>&1; then
	useradd -m -G {SUDO_GROUP} -s /bin/bash {q(profile.username)}
fi

echo "Setting root password..."
printf '%s\\n' {q('root:' + DEFAULT_PASSWORD)} | chpasswd
echo "Setting user password..."
printf '%s\\n' {q(profile.username + ':' + DEFAULT_PASSWORD)} | chpasswd

echo "Configuring sudo..."
printf '%s\\n' {q(sudoers)} > /etc/sudoers.d/{SUDO_GROUP}
chmod 440 /etc/sudoers.d/{SUDO_GROUP}

echo "Installing bootloader..."
grub-install --target=x86_64-efi --efi-directory={q(efi_directory)} --bootloader-id={BOOTLOADER_ID}
grub-mkconfig -o /boot/grub/grub.cfg

echo "System configuration completed."
'''

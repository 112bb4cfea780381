import random
import select
import socket
import struct
import time

from .output import debug

CONNECTIVITY_HOST = 'archlinux.org'
CONNECTIVITY_ATTEMPTS = 3


def calc_checksum(icmp_packet: bytes) -> int:
	# Calculate the ICMP checksum
	checksum = 0
	for i in range(0, len(icmp_packet), 2):
		checksum += (icmp_packet[i] << 8) + (struct.unpack('B', icmp_packet[i + 1 : i + 2])[0] if len(icmp_packet[i + 1 : i + 2]) else 0)

	checksum = (checksum >> 16) + (checksum & 0xFFFF)
	checksum = ~checksum & 0xFFFF

	return checksum


def build_icmp(payload: bytes) -> bytes:
	# Define the ICMP Echo Request packet
	icmp_packet = struct.pack('!BBHHH', 8, 0, 0, 0, 1) + payload

	checksum = calc_checksum(icmp_packet)

	return struct.pack('!BBHHH', 8, 0, checksum, 0, 1) + payload


def ping(hostname: str, timeout: int = 5) -> int:
	"""
	Sends a single ICMP echo request and returns the round trip in
	milliseconds, or -1 if no matching reply arrived within ``timeout``.
	"""
	started = time.time()
	random_identifier = f'archstrap-{random.randint(1000, 9999)}'.encode()
	icmp_packet = build_icmp(random_identifier)

	latency = -1

	try:
		# Raw sockets require root, which preflight has verified
		with select.epoll() as watchdog, socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP) as icmp_socket:
			watchdog.register(icmp_socket, select.EPOLLIN | select.EPOLLHUP)
			icmp_socket.sendto(icmp_packet, (hostname, 0))

			while latency == -1 and time.time() - started < timeout:
				for _fileno, _event in watchdog.poll(0.1):
					response, _ = icmp_socket.recvfrom(1024)
					icmp_type = struct.unpack('!B', response[20:21])[0]

					# Check if it's an Echo Reply (ICMP type 0)
					if icmp_type == 0 and response[-len(random_identifier) :] == random_identifier:
						latency = round((time.time() - started) * 1000)
						break
	except OSError as e:
		# Socket creation and name resolution failures (socket.gaierror) land here as well
		debug(f'Error: {e}')

	return latency


def has_connectivity(
	hostname: str = CONNECTIVITY_HOST,
	attempts: int = CONNECTIVITY_ATTEMPTS,
	timeout: int = 5,
) -> bool:
	for attempt in range(1, attempts + 1):
		latency = ping(hostname, timeout=timeout)

		if latency >= 0:
			debug(f'{hostname} answered in {latency} ms (attempt {attempt}/{attempts})')
			return True

		debug(f'No reply from {hostname} (attempt {attempt}/{attempts})')

	return False

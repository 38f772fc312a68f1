# This file is part of pongoloader
# Copyright (C) 2026 The pongoloader authors
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.

import sys
import logging
logger = logging.getLogger("pongoloader")

def cli_error(error: str):
	logger.info(f"CLI error: {error}")
	sys.exit(1)

def is_usb_path(usb_addr) -> bool:
	return isinstance(usb_addr, tuple) and isinstance(usb_addr[1], tuple)

def prettify_usb_addr(usb_addr) -> str:
	if is_usb_path(usb_addr):
		return f"{usb_addr[0]}-{'.'.join([str(x) for x in usb_addr[1]])}"
	else:
		return f"{usb_addr[0]:04x}:{usb_addr[1]:04x}"

def parse_delay_ms(delay) -> float:
	"""
	Settle delays are given in milliseconds on the command line and in
	config files, and handled in seconds everywhere else.
	"""
	try:
		delay_ms = float(delay)
	except (TypeError, ValueError):
		cli_error(f"invalid settle delay {delay!r}")
	if delay_ms < 0:
		cli_error(f"settle delay must not be negative, got {delay_ms}")
	return delay_ms / 1000

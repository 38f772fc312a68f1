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

import usb
import usb.core
import usb.util
import logging
logger = logging.getLogger("pongoloader")

"""
Thin blocking layer over a pyusb device handle. Every call either completes
or raises TransportError, which carries the libusb error code untouched.
"""

# libusb treats a zero timeout as "wait forever"
NO_TIMEOUT = 0

# pyusb reports some backend failures without a USBError
BACKEND_ERRORS = (usb.core.USBError, NotImplementedError, ValueError, TypeError)


class TransportError(Exception):
	"Raised when a USB operation on the pongoOS device fails"

	def __init__(self, operation: str, code, text: str):
		self.operation = operation
		self.code = code
		self.text = text
		msg = f"{operation}: {text}"
		if code is not None:
			msg += f" (code {code})"
		super().__init__(msg)

	@classmethod
	def from_usb_error(cls, operation: str, err: Exception):
		if not isinstance(err, usb.core.USBError):
			return cls(operation, None, f"{type(err).__name__}: {err}")
		text = err.strerror if err.strerror else str(err)
		return cls(operation, err.backend_error_code, text)


class PongoDevice():
	def __init__(self, dev: usb.core.Device):
		self.dev = dev
		self.opened = False
		self.claimed = []

	def __repr__(self):
		return f"PongoDevice({self.dev.idVendor:04x}:{self.dev.idProduct:04x} bus {self.dev.bus} address {self.dev.address})"

	def open(self):
		try:
			self.dev.set_configuration()
		except BACKEND_ERRORS as err:
			raise TransportError.from_usb_error("libusb_open", err) from err
		self.opened = True

	def close(self):
		"""
		Drop the device handle. Failures are only logged since this
		runs on cleanup paths where the original error matters more.
		"""
		if not self.opened:
			return
		self.opened = False
		try:
			usb.util.dispose_resources(self.dev)
		except BACKEND_ERRORS as err:
			logger.debug(f"ignoring error while closing {self}: {err}")

	def claim_interface(self, intf: int):
		try:
			usb.util.claim_interface(self.dev, intf)
		except BACKEND_ERRORS as err:
			raise TransportError.from_usb_error("libusb_claim_interface", err) from err
		self.claimed.append(intf)

	def release_interface(self, intf: int):
		if intf not in self.claimed:
			return
		self.claimed.remove(intf)
		try:
			usb.util.release_interface(self.dev, intf)
		except BACKEND_ERRORS as err:
			raise TransportError.from_usb_error("libusb_release_interface", err) from err

	def ctrl_transfer(self, request_type: int, request: int, value: int = 0, index: int = 0, data_or_length=None, timeout: int = NO_TIMEOUT, operation: str = "libusb_control_transfer"):
		try:
			return self.dev.ctrl_transfer(request_type, request, value, index, data_or_length, timeout)
		except BACKEND_ERRORS as err:
			raise TransportError.from_usb_error(operation, err) from err

	def bulk_transfer(self, endpoint: int, data, timeout: int = NO_TIMEOUT, operation: str = "libusb_bulk_transfer") -> int:
		try:
			return self.dev.write(endpoint, data, timeout)
		except BACKEND_ERRORS as err:
			raise TransportError.from_usb_error(operation, err) from err

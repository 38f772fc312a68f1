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
import usb.backend.libusb1
import platform
from time import sleep
import logging
logger = logging.getLogger("pongoloader")

from pongoloader.transport import TransportError

EVENT_DEVICE_ARRIVED = 0x01

# delay between two bus scans when nothing happened
POLL_INTERVAL = 0.5

class USBContext():
	"""
	Owns the libusb backend and the device list of the last bus scan.
	Arrival watches are emulated on top of pyusb, which has no hotplug
	API: handle_events() rescans the bus and reports devices that were
	not present during the previous scan. A newly registered watch is
	also told about every matching device already on the bus, which
	mirrors libusb's HOTPLUG_ENUMERATE flag.

	One context is created per run and passed explicitly to whoever
	needs to talk to the bus.
	"""

	def __init__(self, backend=None, poll_interval: float = POLL_INTERVAL):
		if backend is None:
			backend = usb.backend.libusb1.get_backend()
		if backend is None:
			raise TransportError("libusb_init", None, "no libusb backend found, please check your libusb installation")

		self.backend = backend
		self.poll_interval = poll_interval
		self.devices = []
		self.known = set()
		self.watches = {}
		self.next_handle = 1

	def rescan(self):
		self.devices.clear()
		try:
			self.devices = list(usb.core.find(find_all=True, backend=self.backend))
		except usb.core.USBError as err:
			raise TransportError.from_usb_error("libusb_get_device_list", err) from err

		if platform.system() == "Windows":
			self.check_for_libusb_bug()

	def check_for_libusb_bug(self):
		"""
		Some versions of libusb on Windows allocate the same bus number
		to two different root hubs. Bus addresses are used to tell new
		devices from old ones, so this cannot be tolerated.
		"""
		root_hubs = [dev for dev in self.devices if dev.parent is None]
		bus_numbers = set([dev.bus for dev in root_hubs])
		if len(root_hubs) > len(bus_numbers):
			raise TransportError("libusb_get_device_list", None, "libusb bug detected! Two root hubs were assigned the same bus number! Please update libusb to a newer version")

	def register_watch(self, vid: int, pid: int, callback) -> int:
		"""
		callback(ctx, dev, event) is called for each matching arrival.
		Returning True from it deregisters the watch.
		"""
		handle = self.next_handle
		self.next_handle += 1
		self.watches[handle] = {"vid": vid, "pid": pid, "callback": callback, "enumerate": True}
		logger.debug(f"registered arrival watch {handle} for {vid:04x}:{pid:04x}")
		return handle

	def deregister_watch(self, handle: int):
		if self.watches.pop(handle, None) is not None:
			logger.debug(f"deregistered arrival watch {handle}")

	def handle_events(self) -> int:
		"""
		Run one scan of the bus and dispatch arrival events. Sleeps for
		poll_interval when no event was delivered, so that callers can
		simply loop on it. Returns the number of delivered events.
		"""
		self.rescan()

		current = {}
		for dev in self.devices:
			current[(dev.bus, dev.address)] = dev

		arrived = [key for key in current if key not in self.known]
		self.known = set(current.keys())

		delivered = 0
		for handle in list(self.watches.keys()):
			watch = self.watches.get(handle)
			if watch is None:
				continue

			keys = list(current.keys()) if watch["enumerate"] else arrived
			watch["enumerate"] = False

			for key in keys:
				dev = current[key]
				if dev.idVendor != watch["vid"] or dev.idProduct != watch["pid"]:
					continue

				delivered += 1
				if watch["callback"](self, dev, EVENT_DEVICE_ARRIVED):
					self.deregister_watch(handle)
					break

		if delivered == 0:
			sleep(self.poll_interval)

		return delivered

	def exit(self):
		self.watches.clear()
		self.devices.clear()
		self.known = set()

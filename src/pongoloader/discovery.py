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

import logging
logger = logging.getLogger("pongoloader")

from pongoloader.transport import PongoDevice, TransportError
from pongoloader.utils import prettify_usb_addr
from pongoloader.usb import EVENT_DEVICE_ARRIVED

PONGO_USB_ID = (0x05ac, 0x4141)


def wait_for_device(ctx, usb_id: tuple = PONGO_USB_ID) -> PongoDevice:
	"""
	Block until a device matching usb_id shows up on the bus, open it
	and return it. Only the first arrival is taken. If opening the
	device fails, the TransportError is raised from here once the watch
	is gone, and nothing is left open.
	"""
	(vid, pid) = usb_id
	result = {"device": None, "error": None}

	def on_arrival(ctx, dev, event) -> bool:
		if event != EVENT_DEVICE_ARRIVED:
			return False

		if result["device"] is not None or result["error"] is not None:
			return True

		pongo_dev = PongoDevice(dev)
		try:
			pongo_dev.open()
		except TransportError as err:
			result["error"] = err
			return True

		logger.debug(f"opened device at {prettify_usb_addr((dev.bus, tuple(dev.port_numbers or ())))}")
		result["device"] = pongo_dev
		return True

	logger.info("Waiting for pongoOS device...")
	handle = ctx.register_watch(vid, pid, on_arrival)

	try:
		while result["device"] is None and result["error"] is None:
			ctx.handle_events()
	except BaseException:
		if result["device"] is not None:
			result["device"].close()
		raise
	finally:
		ctx.deregister_watch(handle)

	if result["error"] is not None:
		raise result["error"]

	logger.info(f"Got pongoOS device {prettify_usb_addr(usb_id)}")
	return result["device"]

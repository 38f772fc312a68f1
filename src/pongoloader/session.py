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

import os
import enum
import mmap
from contextlib import contextmanager, ExitStack
from time import sleep
import logging
logger = logging.getLogger("pongoloader")

from pongoloader.protocols import pongo
from pongoloader.discovery import wait_for_device, PONGO_USB_ID
from pongoloader.transport import TransportError

# dead time pongoOS needs to consume a command before the next one
SETTLE_DELAY = 0.2


class SessionState(enum.Enum):
	IDLE = enum.auto()
	AWAITING_DEVICE = enum.auto()
	CLAIMED = enum.auto()
	MODULE_LOADED = enum.auto()
	PREPARING = enum.auto()
	BOOTING = enum.auto()
	DONE = enum.auto()
	FAILED = enum.auto()


class ModuleFileError(Exception):
	"Raised when the module file cannot be stat'ed, opened or mapped"

	def __init__(self, operation: str, path: str, err: Exception):
		self.operation = operation
		self.path = path
		self.reason = getattr(err, "strerror", None) or str(err)
		super().__init__(f"Problem {operation}'ing '{path}': {self.reason}")


@contextmanager
def map_module(path: str):
	"""
	Yield a read-only mapping of the module file. The mapping and the
	file are closed when the block exits.
	"""
	try:
		st = os.stat(path)
	except OSError as err:
		raise ModuleFileError("stat", path, err) from err

	try:
		file = open(path, "rb")
	except OSError as err:
		raise ModuleFileError("open", path, err) from err

	with file:
		logger.info(f"Module size {st.st_size:#x}")
		try:
			blob = mmap.mmap(file.fileno(), 0, access=mmap.ACCESS_READ)
		except (OSError, ValueError) as err:
			# ValueError is what mmap raises for empty files
			raise ModuleFileError("mmap", path, err) from err

		with blob:
			yield blob


@contextmanager
def claimed_interface(dev, intf: int):
	dev.claim_interface(intf)
	try:
		yield dev
	finally:
		try:
			dev.release_interface(intf)
		except TransportError as err:
			logger.debug(f"ignoring error while releasing interface {intf}: {err}")


class LoaderSession():
	"""
	Drives one pongoOS boot: wait for the device, claim it, upload the
	module, then run modload, stalker-prep and bootx with a settle delay
	between each command. Whatever happens, the interface is released
	and the device closed before run() returns.
	"""

	def __init__(self, ctx, module_path: str, settle_delay: float = SETTLE_DELAY, discard_on_failure: bool = True, usb_id: tuple = PONGO_USB_ID):
		self.ctx = ctx
		self.module_path = module_path
		self.settle_delay = settle_delay
		self.discard_on_failure = discard_on_failure
		self.usb_id = usb_id
		self.state = SessionState.IDLE

	def set_state(self, state: SessionState):
		logger.debug(f"session state {self.state.name} -> {state.name}")
		self.state = state

	def boot(self):
		with ExitStack() as stack:
			self.set_state(SessionState.AWAITING_DEVICE)
			dev = wait_for_device(self.ctx, self.usb_id)
			stack.callback(dev.close)

			stack.enter_context(claimed_interface(dev, pongo.PONGO_INTERFACE))
			self.set_state(SessionState.CLAIMED)

			# the module is only mapped until modload has been sent
			with map_module(self.module_path) as blob:
				pongo.upload(dev, blob, self.discard_on_failure)
				pongo.send_command(dev, "modload")
			self.set_state(SessionState.MODULE_LOADED)

			sleep(self.settle_delay)
			pongo.send_command(dev, "stalker-prep")
			self.set_state(SessionState.PREPARING)

			sleep(self.settle_delay)
			pongo.send_command(dev, "bootx")
			self.set_state(SessionState.BOOTING)

		self.set_state(SessionState.DONE)

	def run(self) -> int:
		try:
			self.boot()
		except (TransportError, ModuleFileError) as err:
			logger.error(str(err))
			self.set_state(SessionState.FAILED)
			return 1
		finally:
			self.ctx.exit()

		logger.info("pongoOS module loaded and booted")
		return 0

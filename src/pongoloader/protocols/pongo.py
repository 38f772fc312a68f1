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

import array
import logging

logger = logging.getLogger("pongoloader")
from usb.util import (
	CTRL_IN,
	CTRL_OUT,
	CTRL_TYPE_CLASS,
	CTRL_RECIPIENT_INTERFACE,
	ENDPOINT_OUT,
)
from pongoloader.transport import TransportError

# 0x21
REQTYPE_OUT = CTRL_OUT | CTRL_TYPE_CLASS | CTRL_RECIPIENT_INTERFACE
# 0xa1
REQTYPE_IN = CTRL_IN | CTRL_TYPE_CLASS | CTRL_RECIPIENT_INTERFACE

REQ_STDOUT = 1
REQ_BULK_UPLOAD_INIT = 1
REQ_BULK_UPLOAD_DISCARD = 2
REQ_COMMAND = 3

EP_BULK_OUT = ENDPOINT_OUT | 2

STDOUT_SIZE = 512

PONGO_INTERFACE = 0


def init_bulk_upload(dev) -> None:
	dev.ctrl_transfer(
		REQTYPE_OUT,
		REQ_BULK_UPLOAD_INIT,
		0,
		0,
		None,
		operation="pongo_init_bulk_upload",
	)


def discard_bulk_upload(dev) -> None:
	dev.ctrl_transfer(
		REQTYPE_OUT,
		REQ_BULK_UPLOAD_DISCARD,
		0,
		0,
		None,
		operation="pongo_discard_bulk_upload",
	)


def do_bulk_upload(dev, blob) -> int:
	"""
	Push the whole blob to the bulk OUT endpoint in a single
	transfer. Splitting it into packets is left to libusb.

	pyusb does not accept file mappings, so blob is copied into a
	byte array first.
	"""
	payload = array.array("B")
	payload.frombytes(blob)
	logger.debug(f"bulk upload of {len(payload):#x} bytes")
	return dev.bulk_transfer(EP_BULK_OUT, payload, operation="pongo_do_bulk_upload")


def upload(dev, blob, discard_on_failure: bool = True) -> None:
	"""
	Load blob into the pongoOS upload buffer.

	Procedure is as follows:
	1. CONTROL OUT: start a new bulk upload
	2. BULK OUT: the whole blob
	If step 2 fails, the partial upload is discarded before the error
	is passed on. Errors raised by the discard request are dropped.
	"""
	init_bulk_upload(dev)

	try:
		do_bulk_upload(dev, blob)
	except TransportError:
		if discard_on_failure:
			try:
				discard_bulk_upload(dev)
			except TransportError as err:
				logger.debug(f"discarding failed upload: {err}")
		raise


def send_command(dev, command: str) -> None:
	"""
	Send one line to the pongoOS shell. The line is terminated with a
	newline and sent as a NUL-terminated string. The device does not
	acknowledge commands.
	"""
	packet = (command + "\n").encode("utf-8") + b"\x00"
	logger.debug(f"sending command {command!r}")
	dev.ctrl_transfer(
		REQTYPE_OUT,
		REQ_COMMAND,
		0,
		0,
		packet,
		operation="pongo_send_command",
	)


def get_stdout(dev) -> bytes:
	ret = dev.ctrl_transfer(
		REQTYPE_IN,
		REQ_STDOUT,
		0,
		0,
		STDOUT_SIZE,
		operation="pongo_get_stdout",
	)
	return bytes(ret)

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
import argparse
from pongoloader import __version__
from pongoloader.session import LoaderSession
from pongoloader.transport import TransportError
from pongoloader.usb import USBContext
import pongoloader.config as config
import logging
import importlib.resources


def cli():
	example = """Examples:
	loader checkra1n-kpf-pongo
	loader --settle-delay 500 --loglevel debug checkra1n-kpf-pongo
	loader -f pongo.yaml
"""

	parser = argparse.ArgumentParser(
		prog="loader",
		description="Load a module into a pongoOS device and boot it",
		epilog=example,
		formatter_class=argparse.RawDescriptionHelpFormatter,
	)
	parser.add_argument("module", nargs="?", help="path to the pongoOS module")
	optional = parser.add_argument_group("Optional")
	optional.add_argument(
		"-f",
		"--config-file",
		help="loader configuration, passed as a yaml file",
		metavar='"pongo.yaml"',
	)
	optional.add_argument(
		"--settle-delay",
		help="delay between two pongoOS commands, in milliseconds, defaults to 200 which is also the minimum",
		metavar="ms",
	)
	optional.add_argument(
		"--no-discard",
		help="don't ask the device to discard a partial upload after a failed transfer",
		action="store_true",
	)
	optional.add_argument(
		"--loglevel",
		help="set loglevel",
		choices=["silent", "info", "debug"],
		default="silent",
	)
	optional.add_argument("--logfile", help="set logfile", default="pongo_loader.log")
	utilargs = parser.add_argument_group("Utilities")
	utilargs.add_argument("--version", help="show version", action="store_true")
	utilargs.add_argument(
		"--udev", help="get required udev rules for the loader", action="store_true"
	)

	args = parser.parse_args()

	# setup logging
	logger = logging.getLogger("pongoloader")
	logger.setLevel(logging.DEBUG)
	log_formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

	stdout_handler = logging.StreamHandler(sys.stdout)
	stdout_handler.setLevel(logging.INFO)
	stdout_handler.setFormatter(log_formatter)
	logger.addHandler(stdout_handler)

	if args.loglevel != "silent":
		log_handler = logging.FileHandler(args.logfile, encoding="utf-8")
		log_handler.setFormatter(log_formatter)
		if args.loglevel == "debug":
			log_handler.setLevel(logging.DEBUG)
		elif args.loglevel == "info":
			log_handler.setLevel(logging.INFO)
		logger.addHandler(log_handler)

	# show version
	if args.version:
		logger.info(f"pongoloader v{__version__}")
		sys.exit(0)

	# print udev rules
	if args.udev:
		print(importlib.resources.files("pongoloader").joinpath("50-pongoloader.rules").read_text())
		sys.exit(0)

	# initialize global config
	config.init_config(args)

	try:
		ctx = USBContext()
	except TransportError as err:
		logger.error(str(err))
		sys.exit(1)

	session = LoaderSession(
		ctx,
		config.loader_config["module_path"],
		settle_delay=config.loader_config["settle_delay"],
		discard_on_failure=config.loader_config["discard_on_failure"],
	)
	ret = session.run()

	if args.loglevel != "silent":
		logger.info(f"Logs were appended to {args.logfile}")

	sys.exit(ret)


if __name__ == "__main__":
	cli()

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
import yaml
from pongoloader.utils import cli_error, parse_delay_ms
from pongoloader.session import SETTLE_DELAY
import logging

logger = logging.getLogger("pongoloader")

loader_config = {}  # Global immutable config to be initialized with CLI args


def read_config_file(path: str) -> dict:
	try:
		with open(path, "r") as file:
			file_config = yaml.safe_load(file)
	except OSError as err:
		cli_error(f"failed to read config file {path}: {err.strerror}")
	except yaml.YAMLError as err:
		cli_error(f"failed to parse config file {path}: {err}")

	if file_config is None:
		return {}

	if not isinstance(file_config, dict):
		cli_error(f"config file {path} did not evaluate to dict: {file_config}")

	return file_config


def complete_module_path(file_config: dict, this_file_path: str) -> None:
	paths_relative_to_conf = file_config.pop("paths-relative-to", "CWD")
	if paths_relative_to_conf == "CWD":
		return
	elif paths_relative_to_conf == "THIS_FILE":
		path_relative_to = os.path.dirname(this_file_path)
	else:
		path_relative_to = paths_relative_to_conf

	module = file_config.get("module", {})
	if "path" in module:
		module["path"] = os.path.join(path_relative_to, module["path"])


def settle_delay(delay_ms) -> float:
	delay = parse_delay_ms(delay_ms)
	if delay < SETTLE_DELAY:
		cli_error(f"settle delay must be at least {SETTLE_DELAY * 1000:.0f} ms, pongoOS needs that long to consume a command")
	return delay


def init_config(args):
	# this is the only time that config.loader_config should be modified!
	file_config = {}
	if args.config_file is not None:
		file_config = read_config_file(args.config_file)
		module = file_config.get("module", {})
		if not isinstance(module, dict):
			cli_error(f"'module' entry of {args.config_file} should be a dict, e.g. {{'path': 'module.bin'}}")
		complete_module_path(file_config, args.config_file)

	module_path = args.module
	if module_path is None:
		module_path = file_config.get("module", {}).get("path")
	elif "module" in file_config:
		logger.warning("You passed a module path on the command line AND in a config file, using the command line one")

	if module_path is None:
		cli_error("usage: loader <pongo module>")

	loader_config["module_path"] = module_path

	if args.settle_delay is not None:
		loader_config["settle_delay"] = settle_delay(args.settle_delay)
	elif "settle-delay" in file_config:
		loader_config["settle_delay"] = settle_delay(file_config["settle-delay"])
	else:
		loader_config["settle_delay"] = SETTLE_DELAY

	discard = file_config.get("discard-on-failure", True)
	if not isinstance(discard, bool):
		cli_error(f"discard-on-failure should be true or false, got {discard!r}")
	loader_config["discard_on_failure"] = discard and not args.no_discard

	logger.debug(f"loader_config:{str(loader_config)}")

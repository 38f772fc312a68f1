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
import argparse
import tempfile
import unittest

import pongoloader.config as config
from pongoloader.session import SETTLE_DELAY


def make_args(**args):
	defaults = {
		"module": None,
		"config_file": None,
		"settle_delay": None,
		"no_discard": False,
		"loglevel": "silent",
		"logfile": "pongo_loader.log",
	}
	return argparse.Namespace(**{**defaults, **args})


class TestConfig(unittest.TestCase):
	def setUp(self):
		config.loader_config.clear()
		self.tmpdir = tempfile.TemporaryDirectory()

	def tearDown(self):
		self.tmpdir.cleanup()

	def write_config(self, text: str) -> str:
		path = os.path.join(self.tmpdir.name, "pongo.yaml")
		with open(path, "w") as file:
			file.write(text)
		return path

	def test_defaults(self):
		config.init_config(make_args(module="kpf"))
		self.assertEqual(config.loader_config["module_path"], "kpf")
		self.assertEqual(config.loader_config["settle_delay"], SETTLE_DELAY)
		self.assertTrue(config.loader_config["discard_on_failure"])
		self.assertEqual(sorted(config.loader_config), ["discard_on_failure", "module_path", "settle_delay"])

	def test_missing_module(self):
		with self.assertRaises(SystemExit) as ctx:
			config.init_config(make_args())
		self.assertEqual(ctx.exception.code, 1)

	def test_settle_delay_in_ms(self):
		config.init_config(make_args(module="kpf", settle_delay="500"))
		self.assertEqual(config.loader_config["settle_delay"], 0.5)

	def test_bad_settle_delay(self):
		for delay in ["-1", "soon", "0", "199"]:
			with self.subTest(delay=delay):
				with self.assertRaises(SystemExit) as ctx:
					config.init_config(make_args(module="kpf", settle_delay=delay))
				self.assertEqual(ctx.exception.code, 1)

	def test_minimum_settle_delay(self):
		config.init_config(make_args(module="kpf", settle_delay="200"))
		self.assertEqual(config.loader_config["settle_delay"], SETTLE_DELAY)

	def test_config_file_settle_delay_too_short(self):
		path = self.write_config("module:\n  path: kpf\nsettle-delay: 50\n")
		with self.assertRaises(SystemExit) as ctx:
			config.init_config(make_args(config_file=path))
		self.assertEqual(ctx.exception.code, 1)

	def test_no_discard(self):
		config.init_config(make_args(module="kpf", no_discard=True))
		self.assertFalse(config.loader_config["discard_on_failure"])

	def test_config_file(self):
		path = self.write_config(
			"module:\n"
			"  path: kpf\n"
			"settle-delay: 300\n"
			"discard-on-failure: false\n"
			"paths-relative-to: THIS_FILE\n"
		)
		config.init_config(make_args(config_file=path))
		self.assertEqual(config.loader_config["module_path"], os.path.join(self.tmpdir.name, "kpf"))
		self.assertEqual(config.loader_config["settle_delay"], 0.3)
		self.assertFalse(config.loader_config["discard_on_failure"])

	def test_config_file_paths_relative_to_cwd(self):
		path = self.write_config("module:\n  path: kpf\n")
		config.init_config(make_args(config_file=path))
		self.assertEqual(config.loader_config["module_path"], "kpf")

	def test_config_file_paths_relative_to_dir(self):
		path = self.write_config("module:\n  path: kpf\npaths-relative-to: /opt/pongo\n")
		config.init_config(make_args(config_file=path))
		self.assertEqual(config.loader_config["module_path"], "/opt/pongo/kpf")

	def test_cli_overrides_config_file(self):
		path = self.write_config("module:\n  path: kpf\nsettle-delay: 300\n")
		with self.assertLogs("pongoloader", level="WARNING"):
			config.init_config(make_args(module="other", settle_delay="250", config_file=path))
		self.assertEqual(config.loader_config["module_path"], "other")
		self.assertEqual(config.loader_config["settle_delay"], 0.25)

	def test_empty_config_file(self):
		path = self.write_config("")
		config.init_config(make_args(module="kpf", config_file=path))
		self.assertEqual(config.loader_config["module_path"], "kpf")

	def test_invalid_config_files(self):
		for text in ["- kpf\n", "module: kpf\n", "module:\n  path: kpf\ndiscard-on-failure: maybe\n", "module: [\n"]:
			with self.subTest(text=text):
				path = self.write_config(text)
				with self.assertRaises(SystemExit) as ctx:
					config.init_config(make_args(config_file=path))
				self.assertEqual(ctx.exception.code, 1)

	def test_missing_config_file(self):
		with self.assertRaises(SystemExit) as ctx:
			config.init_config(make_args(config_file=os.path.join(self.tmpdir.name, "nope.yaml")))
		self.assertEqual(ctx.exception.code, 1)

#!/usr/bin/env python3
"""
Unit Tests for Command Line Tools and Logging Setup

Author: Robot Control Team
"""

import io
import logging
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

import h5py
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from robowflex.__main__ import main
from robowflex.src.robowflex_logger import RobowflexLogger

CONFIG_FILE = os.path.join(os.path.dirname(__file__), '..', 'config', 'ompl_planning.yaml')


def run(argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestCLI(unittest.TestCase):
    """Test cases for python -m robowflex."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.h5_path = os.path.join(self.tmpdir.name, 'log.h5')
        with h5py.File(self.h5_path, 'w') as f:
            f.create_dataset('time', data=np.arange(4.0))
            f.create_group('arm').create_dataset('joints', data=np.zeros((4, 7), dtype=np.int32))
            f.create_dataset('flags', data=np.array([True, False]))

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_hdf5_tree(self):
        code, out, _ = run(['hdf5', self.h5_path])
        self.assertEqual(code, 0)
        self.assertIn("arm/", out)
        self.assertIn("  joints: HDF5DataSet Rank: 2, Type: integer, Dimensions: 4 x 7", out)
        self.assertIn("time: HDF5DataSet Rank: 1, Type: double, Dimensions: 4", out)
        self.assertIn("2 datasets", out)

    def test_hdf5_strict(self):
        code, _, err = run(['hdf5', '--strict', self.h5_path])
        self.assertEqual(code, 1)
        self.assertIn("Error", err)

    def test_hdf5_missing_file(self):
        code, _, _ = run(['hdf5', os.path.join(self.tmpdir.name, 'missing.h5')])
        self.assertEqual(code, 1)

    def test_configs(self):
        code, out, _ = run(['configs', CONFIG_FILE])
        self.assertEqual(code, 0)
        self.assertIn("RRTConnectkConfigDefault", out.splitlines())
        self.assertIn("PRMkConfigDefault", out.splitlines())

    def test_configs_default_file(self):
        code, out, _ = run(['configs'])
        self.assertEqual(code, 0)
        self.assertEqual(len(out.splitlines()), 6)

    def test_configs_missing_file(self):
        code, _, err = run(['configs', os.path.join(self.tmpdir.name, 'missing.yaml')])
        self.assertEqual(code, 1)
        self.assertIn("failed to load planner configs", err)

    def test_no_command(self):
        code, out, _ = run([])
        self.assertEqual(code, 0)
        self.assertIn("usage", out)

    def test_log_file(self):
        log_path = os.path.join(self.tmpdir.name, 'logs', 'cli.log')
        code, _, _ = run(['--log-file', log_path, '-v', 'hdf5', self.h5_path])
        self.assertEqual(code, 0)
        with open(log_path) as f:
            self.assertIn("Loaded", f.read())


class TestRobowflexLogger(unittest.TestCase):
    """Test cases for RobowflexLogger."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_writes_module_records(self):
        log_path = os.path.join(self.tmpdir.name, 'robowflex.log')
        log = RobowflexLogger("robowflex", log_file=log_path, level=logging.INFO)
        logging.getLogger("robowflex.src.test_module").info("child message")
        log.debug("hidden message")
        log.close()

        with open(log_path) as f:
            content = f.read()
        self.assertIn("robowflex.src.test_module - INFO - child message", content)
        self.assertNotIn("hidden message", content)
        self.assertEqual(logging.getLogger("robowflex").handlers, [])

    def test_configures_named_tree_only(self):
        log_path = os.path.join(self.tmpdir.name, 'tmpack.log')
        log = RobowflexLogger("tmpack", log_file=log_path, level=logging.INFO)
        logging.getLogger("tmpack.src.tmpack_interface").info("task message")
        logging.getLogger("robowflex.src.planner").warning("planner message")
        log.close()

        with open(log_path) as f:
            content = f.read()
        self.assertIn("tmpack.src.tmpack_interface - INFO - task message", content)
        self.assertNotIn("planner message", content)

    def test_set_level(self):
        log = RobowflexLogger("robowflex", level=logging.WARNING)
        log.set_level(logging.DEBUG)
        self.assertEqual(log.logger.level, logging.DEBUG)
        self.assertTrue(all(h.level == logging.DEBUG for h in log.logger.handlers))
        log.close()


if __name__ == '__main__':
    unittest.main()

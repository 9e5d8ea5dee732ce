#!/usr/bin/env python3
"""
Command line tools for robowflex.

Usage:
    python -m robowflex hdf5 FILE [--strict]     Print the layout of an HDF5 file
    python -m robowflex configs [FILE]           List planner configs in an OMPL YAML file

Options:
    --log-file FILE     Also write log output to FILE
    --verbose, -v       Enable debug logging
"""

import argparse
import logging
import sys

from .src.hdf5 import HDF5Error, HDF5File
from .src.io import Handler
from .src.planner import get_default_ompl_config_path, load_ompl_config
from .src.robowflex_logger import RobowflexLogger


def print_tree(node, indent=0, out=None):
    """Print an HDF5 tree. Groups end in '/' and their members are indented below them."""
    out = out or sys.stdout
    for name, child in node.items():
        if isinstance(child, dict):
            print(f"{'  ' * indent}{name}/", file=out)
            print_tree(child, indent + 1, out)
        else:
            print(f"{'  ' * indent}{name}: {child.get_status()}", file=out)


def run_hdf5(args) -> int:
    try:
        h5 = HDF5File(args.file, strict=args.strict)
    except HDF5Error as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_tree(h5.get_data())
    print(f"{h5.get_dataset_count()} datasets")
    return 0


def run_configs(args) -> int:
    config_file = args.file or get_default_ompl_config_path()
    configs = []
    if not load_ompl_config(Handler("cli"), config_file, configs):
        print(f"Error: failed to load planner configs from {config_file}", file=sys.stderr)
        return 1

    for name in configs:
        print(name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="robowflex", description="robowflex command line tools")
    parser.add_argument('--log-file', default=None, help="Also write log output to this file")
    parser.add_argument('--verbose', '-v', action='store_true', help="Enable debug logging")

    subparsers = parser.add_subparsers(dest='command')

    hdf5_parser = subparsers.add_parser('hdf5', help="Print the layout of an HDF5 file")
    hdf5_parser.add_argument('file', help="HDF5 file, may be a package:// URI")
    hdf5_parser.add_argument('--strict', action='store_true', help="Fail on unsupported dataset types")
    hdf5_parser.set_defaults(func=run_hdf5)

    configs_parser = subparsers.add_parser('configs', help="List planner configs in an OMPL YAML file")
    configs_parser.add_argument('file', nargs='?', default=None,
                                help="OMPL planning YAML, may be a package:// URI (default: bundled config)")
    configs_parser.set_defaults(func=run_configs)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    log = RobowflexLogger("robowflex", log_file=args.log_file,
                          level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return args.func(args)
    finally:
        log.close()


if __name__ == '__main__':
    sys.exit(main())

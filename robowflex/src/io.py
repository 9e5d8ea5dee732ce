#!/usr/bin/env python3
"""
File and Parameter IO Module

Helpers for locating resources and loading configuration:
- Path resolution with ``package://`` URIs and home directory expansion
- YAML file loading
- Namespaced parameter handler used to configure planners

Author: Robot Control Team
"""

import importlib.util
import logging
import os
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

PACKAGE_PREFIX = "package://"


class RobowflexIOError(Exception):
    """Custom exception for IO errors."""
    pass


def _package_name_from_manifest(directory: str) -> Optional[str]:
    manifest = os.path.join(directory, "package.xml")
    if not os.path.isfile(manifest):
        return None

    try:
        name = ET.parse(manifest).getroot().find("name")
    except ET.ParseError as e:
        logger.warning(f"Malformed package manifest {manifest}: {e}")
        return None

    return name.text.strip() if name is not None and name.text else None


def find_package(package: str) -> str:
    """
    Find the directory of a package.

    ROS_PACKAGE_PATH entries are searched first (a directory with the package
    name, or any directory whose package.xml names it), then installed Python
    packages.

    Args:
        package: Package name

    Returns:
        Absolute package directory, empty string if not found
    """
    for root in filter(None, os.environ.get("ROS_PACKAGE_PATH", "").split(os.pathsep)):
        root = os.path.expanduser(root)
        if not os.path.isdir(root):
            continue

        if _package_name_from_manifest(root) == package:
            return os.path.abspath(root)

        for dirpath, dirnames, _ in os.walk(root):
            if os.path.basename(dirpath) == package or _package_name_from_manifest(dirpath) == package:
                return os.path.abspath(dirpath)
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]

    try:
        spec = importlib.util.find_spec(package)
    except (ImportError, ValueError):
        spec = None

    if spec is not None and spec.submodule_search_locations:
        return os.path.abspath(list(spec.submodule_search_locations)[0])

    return ""


def resolve_package(path: str) -> str:
    """Resolve a ``package://`` URI to a filesystem path. Empty string on failure."""
    if not path.startswith(PACKAGE_PREFIX):
        return path

    remainder = path[len(PACKAGE_PREFIX):]
    package, _, relative = remainder.partition("/")
    package_path = find_package(package)
    if not package_path:
        logger.error(f"Failed to find package '{package}' for {path}")
        return ""

    return os.path.join(package_path, relative)


def resolve_path(path: str) -> str:
    """
    Resolve a path to an absolute filesystem path.

    Args:
        path: Path, may be a ``package://`` URI or start with ``~``

    Returns:
        Absolute path, empty string if a package could not be found
    """
    if not path:
        return ""

    resolved = resolve_package(os.fspath(path))
    if not resolved:
        return ""

    return os.path.abspath(os.path.expanduser(resolved))


def load_file_to_yaml(path: str) -> Tuple[bool, Any]:
    """
    Load a YAML file.

    Args:
        path: File to load, resolved with :func:`resolve_path`

    Returns:
        Tuple of (success, parsed document)
    """
    full_path = resolve_path(path)
    if not full_path or not os.path.isfile(full_path):
        logger.error(f"YAML file not found: {path}")
        return False, None

    try:
        with open(full_path, 'r') as f:
            node = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML file {full_path}: {e}")
        return False, None

    logger.debug(f"Loaded YAML from: {full_path}")
    return True, node


class Handler:
    """
    Namespaced parameter store.

    Keys are ``/`` separated and stored relative to the handler namespace, so
    ``handler.set_param("ompl/max_goal_samples", 10)`` lives at
    ``<namespace>/ompl/max_goal_samples``.
    """

    def __init__(self, namespace: str = ""):
        self.namespace = namespace.strip("/")
        self._params: Dict[str, Any] = {}

    def get_namespace(self) -> str:
        return self.namespace

    @staticmethod
    def _key(key: str) -> str:
        key = key.strip("/")
        if not key:
            raise RobowflexIOError("Parameter key must not be empty")
        return key

    def set_param(self, key: str, value: Any):
        self._params[self._key(key)] = value

    def get_param(self, key: str, default: Any = None) -> Any:
        return self._params.get(self._key(key), default)

    def has_param(self, key: str) -> bool:
        return self._key(key) in self._params

    def delete_param(self, key: str) -> bool:
        """Delete a parameter and everything below it. Returns False if nothing was removed."""
        key = self._key(key)
        doomed = [k for k in self._params if k == key or k.startswith(key + "/")]
        for k in doomed:
            del self._params[k]
        return bool(doomed)

    def list_params(self, prefix: str = "") -> List[str]:
        prefix = prefix.strip("/")
        if not prefix:
            return sorted(self._params)
        return sorted(k for k in self._params if k == prefix or k.startswith(prefix + "/"))

    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    def load_yaml_to_params(self, node: Any, prefix: str = ""):
        """
        Load a parsed YAML document into the handler.

        Mappings are stored at their own key and flattened into their
        children, so both ``planner_configs`` and
        ``planner_configs/RRTConnect/type`` are available.

        Args:
            node: Parsed YAML document
            prefix: Key to load the document under
        """
        if isinstance(node, dict):
            if prefix:
                self.set_param(prefix, node)
            for key, value in node.items():
                child = f"{prefix}/{key}" if prefix else str(key)
                self.load_yaml_to_params(value, child)
        elif prefix:
            self.set_param(prefix, node)
        elif node is not None:
            raise RobowflexIOError("Top level YAML document must be a mapping")

    def __repr__(self) -> str:
        return f"Handler(namespace='{self.namespace}', params={len(self._params)})"

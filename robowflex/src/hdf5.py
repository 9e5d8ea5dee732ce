#!/usr/bin/env python3
"""
HDF5 Data Loading Module

Loads an HDF5 file into a nested tree that mirrors its layout:
- Groups become dictionaries keyed by child name
- Datasets become HDF5Data leaves, read eagerly and completely

Integer datasets are read as native ints and floating point datasets as
doubles. Parsing of the container itself is left to h5py.

Author: Robot Control Team
"""

import logging
from enum import Enum
from typing import Dict, Iterator, List, Tuple, Union

import h5py
import numpy as np

from .io import resolve_path

logger = logging.getLogger(__name__)


class HDF5Error(Exception):
    """Custom exception for HDF5 loading errors."""
    pass


class UnsupportedDataTypeError(HDF5Error):
    """Raised for datasets whose element type is neither integer nor floating point."""
    pass


class HDF5DataType(Enum):
    """
    Supported dataset element types and the type they are read as.

    Integers are read as native int when every value fits, otherwise the
    stored integer width is kept.
    """
    INTEGER = ("integer", np.intc)
    DOUBLE = ("double", np.float64)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value[1])

    @classmethod
    def from_dtype(cls, dtype: np.dtype) -> "HDF5DataType":
        if dtype.kind in ('i', 'u'):
            return cls.INTEGER
        if dtype.kind == 'f':
            return cls.DOUBLE
        raise UnsupportedDataTypeError(f"Unsupported HDF5 element type: {dtype}")

    def convert(self, raw: np.ndarray) -> np.ndarray:
        """Convert raw dataset values to the read type without losing integer values."""
        raw = np.asarray(raw)
        if self is HDF5DataType.INTEGER and raw.size:
            info = np.iinfo(self.dtype)
            if raw.min() < info.min or raw.max() > info.max:
                return np.array(raw)
        return np.array(raw, dtype=self.dtype)


class HDF5Data:
    """A dataset read completely into memory."""

    def __init__(self, location: h5py.Group, name: str):
        """
        Read a dataset.

        Args:
            location: File or group containing the dataset
            name: Dataset name relative to location
        """
        dataset = location[name]
        if not isinstance(dataset, h5py.Dataset):
            raise HDF5Error(f"'{name}' is not a dataset")

        self.name = dataset.name
        if dataset.shape is None:
            raise UnsupportedDataTypeError(f"Dataset {self.name} has a null dataspace")

        self.type = HDF5DataType.from_dtype(dataset.dtype)
        self.dims = tuple(int(d) for d in dataset.shape)
        self.rank = len(self.dims)

        self.data = self.type.convert(dataset[()])
        self.data.flags.writeable = False

    def get_dims(self) -> List[int]:
        return list(self.dims)

    def get_rank(self) -> int:
        return self.rank

    def get_type(self) -> HDF5DataType:
        return self.type

    def get_data(self) -> np.ndarray:
        return self.data

    def get_status(self) -> str:
        dims = " x ".join(str(d) for d in self.dims) or "scalar"
        return f"HDF5DataSet Rank: {self.rank}, Type: {self.type.label}, Dimensions: {dims}"

    def __repr__(self) -> str:
        return f"HDF5Data({self.name}, {self.get_status()})"


Node = Union[Dict[str, "Node"], HDF5Data]


class HDF5File:
    """
    An HDF5 file loaded into memory.

    The tree is built once on construction and not modified afterwards.
    """

    def __init__(self, filename: str, strict: bool = False):
        """
        Load an HDF5 file.

        Args:
            filename: Path to the file, may be a package:// URI
            strict: Raise on datasets of unsupported type instead of skipping them
        """
        self.filename = resolve_path(filename)
        self.strict = strict
        self.data: Dict[str, Node] = {}

        try:
            h5file = h5py.File(self.filename, 'r')
        except (OSError, ValueError) as e:
            raise HDF5Error(f"Failed to open HDF5 file {filename}: {e}") from e

        with h5file:
            self._load_group(self.data, h5file)

        logger.info(f"Loaded {self.get_dataset_count()} datasets from {self.filename}")

    @staticmethod
    def list_objects(location: h5py.Group) -> List[str]:
        """List the names of the children of a file or group."""
        return list(location.keys())

    def _load_group(self, node: Dict[str, Node], group: h5py.Group):
        for name in self.list_objects(group):
            self._load_data(node, group, name)

    def _load_data(self, node: Dict[str, Node], location: h5py.Group, name: str):
        kind = location.get(name, getclass=True)

        if kind is h5py.Group:
            child: Dict[str, Node] = {}
            node[name] = child
            self._load_group(child, location[name])

        elif kind is h5py.Dataset:
            try:
                data = HDF5Data(location, name)
            except UnsupportedDataTypeError as e:
                if self.strict:
                    raise
                logger.warning(f"Skipping dataset: {e}")
                return

            logger.debug(data.get_status())
            node[name] = data

        else:
            logger.debug(f"Skipping {location.name}/{name}: not a group or dataset")

    def get_data(self) -> Dict[str, Node]:
        return self.data

    def get(self, path: str) -> Node:
        """
        Look up a node by its ``/`` separated path.

        Raises:
            KeyError: If no node exists at the path
        """
        node: Node = self.data
        for part in filter(None, path.split("/")):
            if not isinstance(node, dict) or part not in node:
                raise KeyError(path)
            node = node[part]
        return node

    def iter_datasets(self) -> Iterator[Tuple[str, HDF5Data]]:
        """Yield (path, dataset) pairs in depth first order."""
        yield from self._walk("", self.data)

    def _walk(self, prefix: str, node: Dict[str, Node]) -> Iterator[Tuple[str, HDF5Data]]:
        for name, child in node.items():
            path = f"{prefix}/{name}"
            if isinstance(child, dict):
                yield from self._walk(path, child)
            else:
                yield path, child

    def get_dataset_count(self) -> int:
        return sum(1 for _ in self.iter_datasets())

    def __contains__(self, path: str) -> bool:
        try:
            self.get(path)
        except KeyError:
            return False
        return True

    def __repr__(self) -> str:
        return f"HDF5File({self.filename}, datasets={self.get_dataset_count()})"

#!/usr/bin/env python3
"""
Geometry primitives used for scene objects and goal regions.

Author: Robot Control Team
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence

import numpy as np


class GeometryError(Exception):
    """Custom exception for invalid geometry."""
    pass


class ShapeType(Enum):
    """Primitive shapes and the number of dimensions each takes."""
    BOX = "box"            # x, y, z extents
    SPHERE = "sphere"      # radius
    CYLINDER = "cylinder"  # radius, length

    @property
    def num_dimensions(self) -> int:
        return {ShapeType.BOX: 3, ShapeType.SPHERE: 1, ShapeType.CYLINDER: 2}[self]


@dataclass(eq=False)
class Geometry:
    shape: ShapeType
    dimensions: np.ndarray

    def __post_init__(self):
        if not isinstance(self.shape, ShapeType):
            try:
                self.shape = ShapeType(str(self.shape).lower())
            except ValueError:
                raise GeometryError(f"Unknown shape type: {self.shape}")

        self.dimensions = np.asarray(self.dimensions, dtype=float).reshape(-1)
        if self.dimensions.shape[0] != self.shape.num_dimensions:
            raise GeometryError(
                f"{self.shape.value} expects {self.shape.num_dimensions} dimensions, "
                f"got {self.dimensions.shape[0]}")
        if np.any(self.dimensions <= 0):
            raise GeometryError(f"{self.shape.value} dimensions must be positive: {self.dimensions.tolist()}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Geometry":
        if 'type' not in data or 'dimensions' not in data:
            raise GeometryError(f"Geometry requires 'type' and 'dimensions': {data}")
        return cls(data['type'], data['dimensions'])

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.shape.value, 'dimensions': self.dimensions.tolist()}

    def get_dimensions(self) -> List[float]:
        return self.dimensions.tolist()

    @property
    def volume(self) -> float:
        d = self.dimensions
        if self.shape == ShapeType.BOX:
            return float(np.prod(d))
        if self.shape == ShapeType.SPHERE:
            return float(4.0 / 3.0 * np.pi * d[0] ** 3)
        return float(np.pi * d[0] ** 2 * d[1])


def make_box(dimensions: Sequence[float]) -> Geometry:
    return Geometry(ShapeType.BOX, dimensions)


def make_sphere(radius: float) -> Geometry:
    return Geometry(ShapeType.SPHERE, [radius])


def make_cylinder(radius: float, length: float) -> Geometry:
    return Geometry(ShapeType.CYLINDER, [radius, length])

#!/usr/bin/env python3
"""
Planning Scene Module

World state used by planners:
- Named collision objects (geometry + pose in the world frame)
- Objects attached to robot links (e.g. after a grasp)
- Optional state validity callback supplied by the embedding application

Collision checking itself is not implemented here; planners ask
``is_state_valid`` which defers to the injected callback.

Author: Robot Control Team
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np

from .geometry import Geometry
from .io import load_file_to_yaml
from .tf import pose_from_dict, pose_to_dict

logger = logging.getLogger(__name__)

StateValidityChecker = Callable[["Scene", Mapping[str, float]], bool]


class SceneError(Exception):
    """Custom exception for scene errors."""
    pass


@dataclass(eq=False)
class CollisionObject:
    name: str
    geometry: Geometry
    pose: np.ndarray = field(default_factory=lambda: np.eye(4))
    attached_link: Optional[str] = None

    @property
    def is_attached(self) -> bool:
        return self.attached_link is not None


class Scene:
    """Planning scene for a robot."""

    def __init__(self, robot=None, name: str = "scene"):
        self.robot = robot
        self.name = name
        self.objects: Dict[str, CollisionObject] = {}
        self._validity_checker: Optional[StateValidityChecker] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], robot=None) -> "Scene":
        """
        Build a scene from a dictionary.

        Expected layout::

            name: table_scene
            collision_objects:
              - id: table
                shape: {type: box, dimensions: [1.0, 2.0, 0.05]}
                pose: {position: [0.8, 0.0, 0.4], orientation: [0, 0, 0, 1]}
                attached_link: null
        """
        scene = cls(robot, name=str(data.get('name', 'scene')))
        for entry in data.get('collision_objects', []) or []:
            if 'id' not in entry or 'shape' not in entry:
                raise SceneError(f"Collision object requires 'id' and 'shape': {entry}")
            scene.add_collision_object(entry['id'], Geometry.from_dict(entry['shape']),
                                       pose_from_dict(entry.get('pose', {})))
            if entry.get('attached_link'):
                scene.attach_object(entry['id'], entry['attached_link'])
        return scene

    @classmethod
    def from_yaml_file(cls, path: str, robot=None) -> "Scene":
        ok, node = load_file_to_yaml(path)
        if not ok:
            raise SceneError(f"Failed to load scene: {path}")
        return cls.from_dict(node or {}, robot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'collision_objects': [
                {
                    'id': obj.name,
                    'shape': obj.geometry.to_dict(),
                    'pose': pose_to_dict(obj.pose),
                    'attached_link': obj.attached_link,
                }
                for obj in self.objects.values()
            ],
        }

    def add_collision_object(self, name: str, geometry: Geometry, pose: Optional[np.ndarray] = None):
        """Add or replace a world object."""
        pose = np.eye(4) if pose is None else np.asarray(pose, dtype=float)
        if pose.shape != (4, 4):
            raise SceneError(f"Pose of '{name}' must be 4x4, got {pose.shape}")
        if name in self.objects:
            logger.debug(f"Replacing collision object '{name}'")
        self.objects[name] = CollisionObject(name, geometry, pose.copy())

    def remove_collision_object(self, name: str):
        if name not in self.objects:
            raise SceneError(f"No object named '{name}'")
        del self.objects[name]

    def has_object(self, name: str) -> bool:
        return name in self.objects

    def get_object_names(self) -> List[str]:
        return list(self.objects)

    def get_object(self, name: str) -> CollisionObject:
        if name not in self.objects:
            raise SceneError(f"No object named '{name}'")
        return self.objects[name]

    def get_object_pose(self, name: str) -> np.ndarray:
        return self.get_object(name).pose.copy()

    def move_object(self, name: str, pose: np.ndarray):
        obj = self.get_object(name)
        if obj.is_attached:
            raise SceneError(f"Cannot move '{name}': attached to link '{obj.attached_link}'")
        obj.pose = np.asarray(pose, dtype=float).copy()

    def attach_object(self, name: str, link: str):
        """Attach a world object to a robot link."""
        obj = self.get_object(name)
        if obj.is_attached:
            raise SceneError(f"Object '{name}' already attached to '{obj.attached_link}'")
        obj.attached_link = link
        logger.info(f"Attached '{name}' to link '{link}'")

    def detach_object(self, name: str, pose: Optional[np.ndarray] = None):
        """
        Detach an object back into the world.

        Args:
            name: Object name
            pose: New world pose, keeps the last known pose if None
        """
        obj = self.get_object(name)
        if not obj.is_attached:
            raise SceneError(f"Object '{name}' is not attached")
        obj.attached_link = None
        if pose is not None:
            obj.pose = np.asarray(pose, dtype=float).copy()
        logger.info(f"Detached '{name}'")

    def get_attached_objects(self) -> Dict[str, str]:
        return {name: obj.attached_link for name, obj in self.objects.items() if obj.is_attached}

    def set_state_validity_checker(self, checker: Optional[StateValidityChecker]):
        self._validity_checker = checker

    def is_state_valid(self, values: Mapping[str, float]) -> bool:
        """Ask the validity callback about a state. Every state is valid without one."""
        if self._validity_checker is None:
            return True
        return bool(self._validity_checker(self, values))

    def deep_copy(self) -> "Scene":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"Scene(name='{self.name}', objects={len(self.objects)}, attached={len(self.get_attached_objects())})"

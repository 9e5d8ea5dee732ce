#!/usr/bin/env python3
"""
Transform Helpers

Pose construction and quaternion utilities, plus builders for position and
orientation goal constraints. Quaternions are stored in [x, y, z, w] order.

Author: Robot Control Team
"""

from typing import Any, Dict, Sequence

import numpy as np
from scipy.spatial.transform import Rotation as R

from .geometry import Geometry
from .messages import OrientationConstraint, PositionConstraint


def create_pose(x: float, y: float, z: float,
                roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0) -> np.ndarray:
    """
    Build a homogeneous transform from a translation and roll/pitch/yaw.

    Args:
        x, y, z: Translation in meters
        roll, pitch, yaw: Fixed-axis XYZ rotation in radians

    Returns:
        4x4 transformation matrix
    """
    T = np.eye(4)
    T[:3, :3] = R.from_euler('xyz', [roll, pitch, yaw]).as_matrix()
    T[:3, 3] = [x, y, z]
    return T


def pose_from_dict(data: Dict[str, Any]) -> np.ndarray:
    """Build a pose from ``{'position': [x, y, z], 'orientation': [x, y, z, w]}``."""
    T = np.eye(4)
    T[:3, 3] = np.asarray(data.get('position', [0.0, 0.0, 0.0]), dtype=float)
    T[:3, :3] = R.from_quat(normalize_quaternion(data.get('orientation', [0.0, 0.0, 0.0, 1.0]))).as_matrix()
    return T


def pose_to_dict(pose: np.ndarray) -> Dict[str, Any]:
    return {
        'position': pose[:3, 3].tolist(),
        'orientation': quaternion_from_matrix(pose).tolist(),
    }


def normalize_quaternion(q: Sequence[float]) -> np.ndarray:
    q = np.asarray(q, dtype=float)
    norm = np.linalg.norm(q)
    if q.shape != (4,) or norm < 1e-12:
        raise ValueError(f"Invalid quaternion: {q.tolist()}")
    return q / norm


def quaternion_from_matrix(pose: np.ndarray) -> np.ndarray:
    """Rotation part of a 3x3 or 4x4 matrix as an [x, y, z, w] quaternion."""
    pose = np.asarray(pose, dtype=float)
    return R.from_matrix(pose[:3, :3]).as_quat()


def get_position_constraint(ee_name: str, base_name: str, pose: np.ndarray,
                            geometry: Geometry) -> PositionConstraint:
    """
    Constrain an end-effector link to a volume.

    Args:
        ee_name: End-effector link name
        base_name: Frame the pose is expressed in
        pose: 4x4 pose of the volume
        geometry: Volume primitive

    Returns:
        Position constraint
    """
    pose = np.asarray(pose, dtype=float)
    if pose.shape != (4, 4):
        raise ValueError(f"Expected 4x4 pose, got shape {pose.shape}")

    return PositionConstraint(
        link_name=ee_name,
        frame_id=base_name,
        primitive=geometry,
        pose=pose.copy(),
    )


def get_orientation_constraint(ee_name: str, base_name: str, orientation: Sequence[float],
                               tolerances: Sequence[float]) -> OrientationConstraint:
    """
    Constrain an end-effector link orientation.

    Args:
        ee_name: End-effector link name
        base_name: Frame the orientation is expressed in
        orientation: Quaternion [x, y, z, w]
        tolerances: Absolute axis tolerances (x, y, z) in radians

    Returns:
        Orientation constraint
    """
    tolerances = np.asarray(tolerances, dtype=float)
    if tolerances.shape != (3,):
        raise ValueError(f"Expected 3 axis tolerances, got {tolerances.tolist()}")

    return OrientationConstraint(
        link_name=ee_name,
        frame_id=base_name,
        orientation=normalize_quaternion(orientation).tolist(),
        absolute_x_axis_tolerance=float(tolerances[0]),
        absolute_y_axis_tolerance=float(tolerances[1]),
        absolute_z_axis_tolerance=float(tolerances[2]),
    )

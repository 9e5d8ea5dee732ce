#!/usr/bin/env python3
"""
Planning Message Types

Plain dataclass containers for the requests, responses and robot states that
flow between the request builder, the planners and the task-and-motion
planning interface. Field names follow the MoveIt message definitions so that
configuration and logs read the same as on the ROS side.

Author: Robot Control Team
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np


class ErrorCode(Enum):
    """Planning result codes (subset of moveit_msgs/MoveItErrorCodes)."""
    SUCCESS = 1
    FAILURE = 99999
    PLANNING_FAILED = -1
    INVALID_MOTION_PLAN = -2
    TIMED_OUT = -6
    START_STATE_IN_COLLISION = -10
    INVALID_GROUP_NAME = -15
    INVALID_GOAL_CONSTRAINTS = -16
    INVALID_ROBOT_STATE = -17


@dataclass
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])


@dataclass
class WorkspaceParameters:
    """Axis aligned box the planner may move the robot base within."""
    frame_id: str = ""
    min_corner: Vector3 = field(default_factory=Vector3)
    max_corner: Vector3 = field(default_factory=Vector3)


@dataclass
class JointState:
    name: List[str] = field(default_factory=list)
    position: List[float] = field(default_factory=list)


@dataclass
class MultiDOFJointState:
    """Multi-DOF joint values, each transform stored as [x, y, z, qx, qy, qz, qw]."""
    joint_names: List[str] = field(default_factory=list)
    transforms: List[List[float]] = field(default_factory=list)


@dataclass
class RobotStateMsg:
    joint_state: JointState = field(default_factory=JointState)
    multi_dof_joint_state: MultiDOFJointState = field(default_factory=MultiDOFJointState)


@dataclass
class JointConstraint:
    joint_name: str
    position: float
    tolerance_above: float
    tolerance_below: float
    weight: float = 1.0


@dataclass
class PositionConstraint:
    """Constrain a link origin to lie inside a primitive volume placed at a pose."""
    link_name: str
    frame_id: str
    primitive: object
    pose: np.ndarray
    weight: float = 1.0


@dataclass
class OrientationConstraint:
    link_name: str
    frame_id: str
    orientation: List[float]
    absolute_x_axis_tolerance: float
    absolute_y_axis_tolerance: float
    absolute_z_axis_tolerance: float
    weight: float = 1.0


@dataclass
class Constraints:
    name: str = ""
    joint_constraints: List[JointConstraint] = field(default_factory=list)
    position_constraints: List[PositionConstraint] = field(default_factory=list)
    orientation_constraints: List[OrientationConstraint] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.joint_constraints or self.position_constraints or self.orientation_constraints)


@dataclass
class MotionPlanRequest:
    """Container for a motion planning query."""
    group_name: str = ""
    workspace_parameters: WorkspaceParameters = field(default_factory=WorkspaceParameters)
    start_state: RobotStateMsg = field(default_factory=RobotStateMsg)
    goal_constraints: List[Constraints] = field(default_factory=list)
    planner_id: str = ""
    num_planning_attempts: int = 1
    allowed_planning_time: float = 0.0
    max_velocity_scaling_factor: float = 1.0
    max_acceleration_scaling_factor: float = 1.0

    def copy(self) -> "MotionPlanRequest":
        return copy.deepcopy(self)


@dataclass
class JointTrajectoryPoint:
    positions: List[float]
    time_from_start: float = 0.0


@dataclass
class RobotTrajectory:
    group_name: str = ""
    joint_names: List[str] = field(default_factory=list)
    points: List[JointTrajectoryPoint] = field(default_factory=list)

    @property
    def num_waypoints(self) -> int:
        return len(self.points)

    @property
    def duration(self) -> float:
        return self.points[-1].time_from_start if self.points else 0.0


@dataclass
class MotionPlanResponse:
    """Result container for a single planning call."""
    error_code: ErrorCode = ErrorCode.FAILURE
    trajectory: Optional[RobotTrajectory] = None
    trajectory_start: Optional[RobotStateMsg] = None
    group_name: str = ""
    planning_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.error_code == ErrorCode.SUCCESS


def get_final_joint_positions(response: MotionPlanResponse) -> Dict[str, float]:
    """
    Get the joint values at the end of a planned trajectory.

    Args:
        response: Planning response

    Returns:
        Mapping of joint name to position at the last waypoint, empty if the
        response carries no trajectory
    """
    trajectory = response.trajectory
    if trajectory is None or not trajectory.points:
        return {}

    last = trajectory.points[-1].positions
    return {name: float(value) for name, value in zip(trajectory.joint_names, last)}

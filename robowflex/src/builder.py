#!/usr/bin/env python3
"""
Motion Request Builder

Convenience construction of motion planning requests for a planner and a
joint group: workspace bounds, start configuration, joint-space goals and
pose goal regions.

Author: Robot Control Team
"""

import logging
import sys
from typing import Optional, Sequence

import numpy as np

from .geometry import Geometry
from .messages import Constraints, JointConstraint, MotionPlanRequest, Vector3, WorkspaceParameters
from .robot import RobotModelError
from .tf import get_orientation_constraint, get_position_constraint

logger = logging.getLogger(__name__)

GOAL_JOINT_TOLERANCE = sys.float_info.epsilon


class MotionRequestBuilder:
    """Builds a MotionPlanRequest for a planner and joint group."""

    DEFAULT_CONFIG = "RRTConnect"

    def __init__(self, planner, group_name: str):
        """
        Initialize request with defaults.

        Args:
            planner: Planner the request is meant for
            group_name: Joint group to plan for

        Raises:
            RobotModelError: If the robot has no such group
        """
        self.planner = planner
        self.robot = planner.get_robot()
        self.group_name = group_name
        self.variables = self.robot.get_group_variable_names(group_name)

        self.request = MotionPlanRequest(group_name=group_name)

        # Default workspace
        self.request.workspace_parameters = WorkspaceParameters(
            min_corner=Vector3(-1.0, -1.0, -1.0),
            max_corner=Vector3(1.0, 1.0, 1.0),
        )

        # Default planning time
        self.request.allowed_planning_time = 5.0

        # Default planner
        configs = planner.get_planner_configs()
        found = next((c for c in configs if self.DEFAULT_CONFIG in c), None)
        if found is not None:
            self.request.planner_id = found

    def set_workspace_bounds(self, wp: WorkspaceParameters):
        self.request.workspace_parameters = wp

    def set_allowed_planning_time(self, allowed_planning_time: float):
        if allowed_planning_time <= 0:
            raise ValueError("allowed_planning_time must be positive")
        self.request.allowed_planning_time = float(allowed_planning_time)

    def set_planner_id(self, planner_id: str):
        configs = self.planner.get_planner_configs()
        if configs and planner_id not in configs:
            logger.warning(f"Planner config '{planner_id}' is not known to the planner")
        self.request.planner_id = planner_id

    def _group_state(self, joints: Sequence[float]) -> dict:
        joints = np.asarray(joints, dtype=float).reshape(-1)
        if joints.shape[0] != len(self.variables):
            raise RobotModelError(
                f"Group '{self.group_name}' has {len(self.variables)} variables, got {joints.shape[0]} values")
        return dict(zip(self.variables, joints.tolist()))

    def set_start_configuration(self, joints: Sequence[float]):
        """
        Set the start state: robot defaults with the group's variables overwritten.

        Args:
            joints: One value per group variable
        """
        state = self.robot.get_default_state()
        state.update(self._group_state(joints))
        self.request.start_state = self.robot.state_to_msg(state)

    def set_goal_configuration(self, joints: Sequence[float]):
        """
        Replace the goal with a joint-space goal.

        Args:
            joints: One value per group variable
        """
        goal = self._group_state(joints)
        constraints = Constraints(joint_constraints=[
            JointConstraint(joint_name=name, position=value,
                            tolerance_above=GOAL_JOINT_TOLERANCE, tolerance_below=GOAL_JOINT_TOLERANCE)
            for name, value in goal.items()
        ])

        self.request.goal_constraints = [constraints]

    def set_goal_region(self, ee_name: str, base_name: str, pose: np.ndarray, geometry: Geometry,
                        orientation: Sequence[float], tolerances: Sequence[float]):
        """
        Replace the goal with a pose region for an end-effector.

        Args:
            ee_name: End-effector link
            base_name: Frame of the pose
            pose: 4x4 pose of the region
            geometry: Region volume
            orientation: Target orientation quaternion [x, y, z, w]
            tolerances: Orientation axis tolerances in radians
        """
        constraints = Constraints()
        constraints.position_constraints.append(get_position_constraint(ee_name, base_name, pose, geometry))
        constraints.orientation_constraints.append(
            get_orientation_constraint(ee_name, base_name, orientation, tolerances))

        self.request.goal_constraints = [constraints]

    def get_request(self) -> MotionPlanRequest:
        """The request under construction. Returned by reference; later builder calls modify it."""
        return self.request

    def get_start_configuration(self) -> Optional[list]:
        """Start values of the group's variables, None if no start has been set."""
        if not self.request.start_state.joint_state.name:
            return None
        state = self.robot.msg_to_state(self.request.start_state)
        return [state[name] for name in self.variables]

#!/usr/bin/env python3
"""
OMPL Planning Plugin

Joint-space planning through the OMPL Python bindings. Each request becomes a
bounded real vector space over the variables of the requested group; state
validity is delegated to the scene. Only joint goal constraints are supported.
The OMPL bindings are imported when the first planning context is built.

Registered as ``ompl_interface/OMPLPlanner``.

Author: Robot Control Team
"""

import logging
import math
import time
from typing import Dict, List, Optional

from .io import Handler
from .messages import (ErrorCode, JointTrajectoryPoint, MotionPlanRequest,
                       MotionPlanResponse, RobotTrajectory, WorkspaceParameters)

logger = logging.getLogger(__name__)

DEFAULT_PLANNER_TYPE = "geometric::RRTConnect"
DEFAULT_PLANNING_TIME = 5.0


class JointSpacePlanningContext:
    """A single planning problem set up in OMPL."""

    def __init__(self, robot, scene, request: MotionPlanRequest, handler: Handler):
        from ompl import base as ob
        from ompl import geometric as og

        self.robot = robot
        self.scene = scene
        self.request = request
        self.handler = handler

        self.variables = robot.get_group_variable_names(request.group_name)
        self.start_state = robot.msg_to_state(request.start_state)
        self.goal = _joint_goal(request, self.variables, self.start_state)

        self.ob = ob
        self.og = og

        self.space = ob.RealVectorStateSpace(len(self.variables))
        bounds = ob.RealVectorBounds(len(self.variables))
        for i, (lower, upper) in enumerate(variable_bounds(robot, self.variables, request.workspace_parameters)):
            bounds.setLow(i, lower)
            bounds.setHigh(i, upper)
        self.space.setBounds(bounds)

        self.setup = og.SimpleSetup(self.space)
        self.setup.setStateValidityChecker(ob.StateValidityCheckerFn(self._is_valid))
        self.setup.setPlanner(self._make_planner())

    def _make_planner(self):
        config = self.handler.get_param(f"planner_configs/{self.request.planner_id}", {}) or {}
        planner_type = str(config.get("type", DEFAULT_PLANNER_TYPE)).split("::")[-1]
        og = self.og
        if not hasattr(og, planner_type):
            logger.warning(f"Unknown OMPL planner '{planner_type}', using RRTConnect")
            planner_type = "RRTConnect"

        planner = getattr(og, planner_type)(self.setup.getSpaceInformation())
        params = planner.params()
        for key, value in config.items():
            if key == "type":
                continue
            if params.hasParam(key):
                params.setParam(key, str(value))
            else:
                logger.debug(f"{planner_type} has no parameter '{key}'")

        logger.debug(f"Using OMPL planner {planner_type} for '{self.request.planner_id}'")
        return planner

    def _to_values(self, state) -> Dict[str, float]:
        values = dict(self.start_state)
        values.update((name, float(state[i])) for i, name in enumerate(self.variables))
        return values

    def _is_valid(self, state) -> bool:
        if self.scene is None:
            return True
        return self.scene.is_state_valid(self._to_values(state))

    def clear(self):
        self.setup.clear()

    def solve(self) -> MotionPlanResponse:
        response = MotionPlanResponse(error_code=ErrorCode.FAILURE, group_name=self.request.group_name,
                                      trajectory_start=self.request.start_state)

        start = self.ob.State(self.space)
        goal = self.ob.State(self.space)
        for i, name in enumerate(self.variables):
            start[i] = self.start_state[name]
            goal[i] = self.goal[0][name]
        self.setup.setStartAndGoalStates(start, goal, self.goal[1])

        planning_time = self.request.allowed_planning_time or DEFAULT_PLANNING_TIME
        begin = time.time()
        solved = self.setup.solve(planning_time)
        response.planning_time = time.time() - begin

        if not solved or not self.setup.haveExactSolutionPath():
            response.error_code = ErrorCode.TIMED_OUT if response.planning_time >= planning_time \
                else ErrorCode.PLANNING_FAILED
            return response

        if self.handler.get_param("ompl/simplify_solutions", True):
            self.setup.simplifySolution()

        path = self.setup.getSolutionPath()
        path.interpolate(waypoint_count(self.handler, path.length()))

        response.trajectory = RobotTrajectory(
            group_name=self.request.group_name,
            joint_names=list(self.variables),
            points=[JointTrajectoryPoint([float(s[i]) for i in range(len(self.variables))])
                    for s in path.getStates()],
        )
        response.error_code = ErrorCode.SUCCESS
        return response


def variable_bounds(robot, variables: List[str], wp: WorkspaceParameters) -> List[tuple]:
    """
    State space bounds for group variables.

    Joint limits where finite. Unbounded virtual joint translations use the
    workspace, other unbounded variables use [-pi, pi].
    """
    workspace = {
        "trans_x": (wp.min_corner.x, wp.max_corner.x),
        "trans_y": (wp.min_corner.y, wp.max_corner.y),
        "trans_z": (wp.min_corner.z, wp.max_corner.z),
    }

    bounds = []
    for name in variables:
        lower, upper = robot.get_joint_limits(name)
        if not (math.isfinite(lower) and math.isfinite(upper)):
            lower, upper = workspace.get(name.split("/")[-1], (-math.pi, math.pi))
        bounds.append((float(lower), float(upper)))
    return bounds


def waypoint_count(handler: Handler, length: float) -> int:
    """
    Number of states a solution path is interpolated to.

    At least ``ompl/minimum_waypoint_count``; with a positive
    ``ompl/maximum_waypoint_distance`` enough states that no segment is longer.
    """
    count = int(handler.get_param("ompl/minimum_waypoint_count", 10))
    max_distance = float(handler.get_param("ompl/maximum_waypoint_distance", 0.0))
    if max_distance > 0.0:
        count = max(count, int(math.ceil(length / max_distance)) + 1)
    return count


def _joint_goal(request: MotionPlanRequest, variables: List[str],
                start_state: Dict[str, float]) -> Optional[tuple]:
    """Goal values and threshold from the first goal constraint, None if it is not a pure joint goal."""
    if not request.goal_constraints:
        return None

    constraints = request.goal_constraints[0]
    if constraints.position_constraints or constraints.orientation_constraints:
        return None
    if not constraints.joint_constraints:
        return None

    goal = {name: start_state[name] for name in variables}
    threshold = 0.0
    for jc in constraints.joint_constraints:
        if jc.joint_name not in goal:
            return None
        goal[jc.joint_name] = jc.position
        threshold = max(threshold, jc.tolerance_above, jc.tolerance_below)

    return goal, max(threshold, 1e-6)


class OMPLPlanningPlugin:
    """Planning plugin building one OMPL planning context per request."""

    def __init__(self, robot, handler: Handler):
        self.robot = robot
        self.handler = handler

    def get_planning_context(self, scene, request: MotionPlanRequest) -> Optional[JointSpacePlanningContext]:
        if not self.robot.has_group(request.group_name):
            logger.error(f"Unknown group '{request.group_name}'")
            return None

        variables = self.robot.get_group_variable_names(request.group_name)
        if _joint_goal(request, variables, self.robot.msg_to_state(request.start_state)) is None:
            logger.error("OMPL plugin only supports joint goal constraints")
            return None

        return JointSpacePlanningContext(self.robot, scene, request, self.handler)

    def plan(self, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        if not self.robot.has_group(request.group_name):
            return MotionPlanResponse(error_code=ErrorCode.INVALID_GROUP_NAME, group_name=request.group_name)

        context = self.get_planning_context(scene, request)
        if context is None:
            return MotionPlanResponse(error_code=ErrorCode.INVALID_GOAL_CONSTRAINTS,
                                      group_name=request.group_name)
        return context.solve()

    def get_description(self) -> str:
        return "OMPL joint-space planner"

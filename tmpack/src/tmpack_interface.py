#!/usr/bin/env python3
"""
Task and Motion Planning Interface

Sequences the goals of a task plan into motion plans. A task planner supplies
an ordered list of goal configurations; each goal is planned from the final
state of the previous plan. Domain semantics live in two injected helpers:

- TMPConstraintHelper: adjusts request constraints for each goal (e.g.
  alternating which feet are locked during footstep planning)
- TMPSceneGraphHelper: updates the scene for each goal (e.g. re-parenting an
  object once it is grasped)

Author: Robot Control Team
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from robowflex.src.messages import MotionPlanResponse, get_final_joint_positions

logger = logging.getLogger(__name__)

# Virtual joint pose of the R2 start configuration (r2_start.yml). The start
# state message carries single-DOF joints only, so this fills the virtual joint
# of groups that contain it.
R2_START_VIRTUAL_JOINT = [1.98552, 0.0242871, 9.14127e-05, 4.8366e-06, -2.4964e-06, 1.0, -6.53607e-07]


class TMPConstraintHelper(ABC):
    """Adds domain constraints to requests while a task plan is planned linearly."""

    @abstractmethod
    def get_task_plan_callback(self):
        """Called once a task plan has been obtained."""

    @abstractmethod
    def plan_linearly_callback(self, request, task_op: Sequence[float], robot,
                               joint_positions: Sequence[float]):
        """
        Called before planning to each goal.

        Args:
            request: MotionRequestBuilder for the next plan
            task_op: Goal configuration of the next plan
            robot: Robot being planned for
            joint_positions: Start configuration of the next plan
        """


class TMPSceneGraphHelper(ABC):
    """Manipulates the scene while a task plan is planned linearly."""

    @abstractmethod
    def get_task_plan_callback(self):
        """Called once a task plan has been obtained."""

    @abstractmethod
    def plan_linearly_callback(self, request, task_op: Sequence[float]):
        """
        Called before planning to each goal, after the constraint helper.

        Args:
            request: MotionRequestBuilder for the next plan
            task_op: Goal configuration of the next plan
        """


class TMPackInterface(ABC):
    """Plans a task plan goal by goal, chaining each plan's end state into the next start."""

    def __init__(self, robot, group_name: str, planner, scene, request,
                 constraint_helper: TMPConstraintHelper, scene_graph_helper: TMPSceneGraphHelper,
                 start_prefix: Sequence[float] = R2_START_VIRTUAL_JOINT):
        """
        Args:
            robot: Robot being planned for
            group_name: Joint group planned for
            planner: Planner with ``plan(scene, request) -> MotionPlanResponse``
            scene: Scene passed to the planner
            request: MotionRequestBuilder, modified in place between plans
            constraint_helper: Domain constraint callbacks
            scene_graph_helper: Scene graph callbacks
            start_prefix: Virtual joint values prepended to every start
                configuration when the group contains the virtual joint.
                Ignored for groups without it; empty keeps the robot's own
                virtual joint values

        Raises:
            ValueError: If the prefix does not cover the group's virtual joint
        """
        self.robot = robot
        self.group_name = group_name
        self.planner = planner
        self.scene = scene
        self.request = request

        self.constraint_helper = constraint_helper
        self.scene_graph_helper = scene_graph_helper

        self.start_prefix = [float(v) for v in start_prefix]

        virtual_names = set(robot.get_virtual_variable_names())
        self.variables = robot.get_group_variable_names(group_name)
        self.virtual_variables = [n for n in self.variables if n in virtual_names]
        if self.virtual_variables and self.start_prefix and \
                len(self.start_prefix) != len(self.virtual_variables):
            raise ValueError(f"Start prefix has {len(self.start_prefix)} values, group '{group_name}' "
                             f"has {len(self.virtual_variables)} virtual joint variables")

    @abstractmethod
    def get_task_plan(self) -> List[List[float]]:
        """Ordered goal configurations for the task."""

    def _group_start(self, state) -> List[float]:
        """Start configuration in group variable order, virtual joint values taken from the prefix."""
        values = []
        for name in self.variables:
            if name in self.virtual_variables and self.start_prefix:
                values.append(self.start_prefix[self.virtual_variables.index(name)])
            else:
                values.append(state[name])
        return values

    def _next_start(self, response: MotionPlanResponse) -> List[float]:
        named_joint_positions = get_final_joint_positions(response)

        saved = self.robot.get_full_state()
        self.robot.set_state(named_joint_positions)
        state = self.robot.get_full_state()
        self.robot.set_state(saved)

        return self._group_start(state)

    def plan_linearly(self, goals: Sequence[Sequence[float]]) -> List[MotionPlanResponse]:
        """
        Plan to each goal in order.

        The start of the first plan is the request's current start state. A
        failed plan is kept in the results and planning continues from the
        robot's current joint values.

        Args:
            goals: Goal configurations, one value per group variable

        Returns:
            One response per goal, in goal order
        """
        responses = []

        start = self.robot.msg_to_state(self.request.get_request().start_state)
        next_start_joint_positions = self._group_start(start)

        for index, goal_conf in enumerate(goals):
            goal_conf = list(goal_conf)

            self.constraint_helper.plan_linearly_callback(self.request, goal_conf, self.robot,
                                                          next_start_joint_positions)
            self.scene_graph_helper.plan_linearly_callback(self.request, goal_conf)

            response = self.planner.plan(self.scene, self.request.get_request())
            responses.append(response)
            if not response.success:
                logger.warning(f"Plan {index + 1}/{len(goals)} failed with {response.error_code.name}, continuing")

            next_start_joint_positions = self._next_start(response)
            logger.debug(f"Number of joints specified: {len(next_start_joint_positions)}")

            self.request.set_start_configuration(next_start_joint_positions)

        logger.info(f"Planned {len(goals)} goals, "
                    f"{sum(1 for r in responses if r.success)} succeeded")
        return responses

    def plan(self) -> List[MotionPlanResponse]:
        """Get the task plan and plan it linearly."""
        goals = self.get_task_plan()
        self.constraint_helper.get_task_plan_callback()
        self.scene_graph_helper.get_task_plan_callback()
        return self.plan_linearly(goals)

#!/usr/bin/env python3
"""
Unit Tests for the Task and Motion Planning Interface

Comprehensive test suite covering:
- Chaining each plan's final state into the next start configuration
- Helper callback ordering and arguments
- Continuing after failed plans
- Running through a full planning pipeline

Author: Robot Control Team
"""

import os
import sys
import unittest
from unittest.mock import Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from robowflex.src.builder import MotionRequestBuilder
from robowflex.src.messages import (ErrorCode, JointTrajectoryPoint, MotionPlanResponse,
                                    RobotTrajectory)
from robowflex.src.planner import OMPLPipelinePlanner, register_planning_plugin
from robowflex.src.robot import Robot
from robowflex.src.scene import Scene
from tmpack.src.tmpack_interface import (R2_START_VIRTUAL_JOINT, TMPConstraintHelper,
                                         TMPSceneGraphHelper, TMPackInterface)

GROUP = 'whole_body'
CONFIG_FILE = os.path.join(os.path.dirname(__file__), '..', '..', 'robowflex', 'config', 'ompl_planning.yaml')


def make_robot():
    return Robot(
        name="r2",
        joints=['j1', 'j2', 'j3'],
        groups={GROUP: ['virtual_joint', 'j1', 'j2', 'j3'], 'legs': ['j1', 'j2', 'j3']},
        virtual_joint='virtual_joint',
    )


def goal(*joints):
    return list(R2_START_VIRTUAL_JOINT) + list(joints)


class GoalFollowingPlanner:
    """Returns a two point trajectory from the request start to its joint goal."""

    def __init__(self, robot, fail_on=()):
        self.robot = robot
        self.fail_on = set(fail_on)
        self.starts = []
        self.calls = 0

    def get_robot(self):
        return self.robot

    def get_planner_configs(self):
        return ['RRTConnectkConfigDefault']

    def plan(self, scene, request):
        self.calls += 1
        self.starts.append(list(request.start_state.joint_state.position))
        if self.calls in self.fail_on:
            return MotionPlanResponse(error_code=ErrorCode.PLANNING_FAILED, group_name=request.group_name)

        variables = self.robot.get_group_variable_names(request.group_name)
        start = self.robot.msg_to_state(request.start_state)
        target = {jc.joint_name: jc.position for jc in request.goal_constraints[0].joint_constraints}
        return MotionPlanResponse(
            error_code=ErrorCode.SUCCESS,
            group_name=request.group_name,
            trajectory=RobotTrajectory(
                group_name=request.group_name,
                joint_names=variables,
                points=[JointTrajectoryPoint([start[n] for n in variables]),
                        JointTrajectoryPoint([target[n] for n in variables])],
            ),
        )


class GoalConstraintHelper(TMPConstraintHelper):
    """Sets each task operation as the request's joint goal."""

    def __init__(self):
        self.task_plan_calls = 0
        self.starts = []

    def get_task_plan_callback(self):
        self.task_plan_calls += 1

    def plan_linearly_callback(self, request, task_op, robot, joint_positions):
        self.starts.append(list(joint_positions))
        request.set_goal_configuration(task_op)


class RecordingSceneGraphHelper(TMPSceneGraphHelper):

    def __init__(self):
        self.task_plan_calls = 0
        self.goals = []

    def get_task_plan_callback(self):
        self.task_plan_calls += 1

    def plan_linearly_callback(self, request, task_op):
        self.goals.append(list(task_op))


class FixedTaskPlan(TMPackInterface):

    def __init__(self, goals, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.goals = goals

    def get_task_plan(self):
        return self.goals


class TestTMPackInterface(unittest.TestCase):
    """Test cases for TMPackInterface."""

    def setUp(self):
        self.robot = make_robot()
        self.planner = GoalFollowingPlanner(self.robot)
        self.scene = Scene(self.robot)
        self.request = MotionRequestBuilder(self.planner, GROUP)
        self.request.set_start_configuration(goal(0.0, 0.0, 0.0))
        self.constraint_helper = GoalConstraintHelper()
        self.scene_graph_helper = RecordingSceneGraphHelper()
        self.goals = [goal(0.1, 0.2, 0.3), goal(0.4, 0.5, 0.6), goal(-0.1, 0.0, 0.1)]

    def make_interface(self, **kwargs):
        return FixedTaskPlan(self.goals, self.robot, GROUP, self.planner, self.scene, self.request,
                             self.constraint_helper, self.scene_graph_helper, **kwargs)

    def test_abstract_classes(self):
        with self.assertRaises(TypeError):
            TMPackInterface(self.robot, GROUP, self.planner, self.scene, self.request,
                            self.constraint_helper, self.scene_graph_helper)
        with self.assertRaises(TypeError):
            TMPConstraintHelper()
        with self.assertRaises(TypeError):
            TMPSceneGraphHelper()

    def test_one_response_per_goal(self):
        responses = self.make_interface().plan_linearly(self.goals)
        self.assertEqual(len(responses), 3)
        self.assertTrue(all(r.success for r in responses))

    def test_starts_chain_from_previous_plan(self):
        self.make_interface().plan_linearly(self.goals)
        self.assertEqual(self.planner.starts, [[0.0, 0.0, 0.0], [0.1, 0.2, 0.3], [0.4, 0.5, 0.6]])
        self.assertEqual(self.constraint_helper.starts,
                         [goal(0.0, 0.0, 0.0), goal(0.1, 0.2, 0.3), goal(0.4, 0.5, 0.6)])
        # The request is left starting at the final goal
        self.assertEqual(self.request.get_request().start_state.joint_state.position, [-0.1, 0.0, 0.1])

    def test_start_prefix_fills_virtual_joint(self):
        self.make_interface().plan_linearly(self.goals)
        transform = self.request.get_request().start_state.multi_dof_joint_state.transforms[0]
        self.assertEqual(transform, R2_START_VIRTUAL_JOINT)

    def test_custom_start_prefix(self):
        prefix = [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0]
        self.make_interface(start_prefix=prefix).plan_linearly(self.goals[:1])
        transform = self.request.get_request().start_state.multi_dof_joint_state.transforms[0]
        self.assertEqual(transform, prefix)

    def test_helpers_called_per_goal(self):
        self.make_interface().plan_linearly(self.goals)
        self.assertEqual(self.scene_graph_helper.goals, self.goals)
        self.assertEqual(len(self.constraint_helper.starts), 3)

    def test_failed_plan_continues_from_robot_state(self):
        self.planner.fail_on = {2}
        self.robot.set_state([0.7, 0.8, 0.9])

        responses = self.make_interface().plan_linearly(self.goals)
        self.assertEqual([r.error_code for r in responses],
                         [ErrorCode.SUCCESS, ErrorCode.PLANNING_FAILED, ErrorCode.SUCCESS])
        # Without a trajectory the next start is the robot's own state
        self.assertEqual(self.planner.starts[2], [0.7, 0.8, 0.9])

    def test_robot_state_restored(self):
        self.robot.set_state([0.7, 0.8, 0.9])
        before = self.robot.get_full_state()
        self.make_interface().plan_linearly(self.goals)
        self.assertEqual(self.robot.get_full_state(), before)

    def test_empty_task_plan(self):
        self.assertEqual(self.make_interface().plan_linearly([]), [])
        self.assertEqual(self.planner.calls, 0)

    def test_plan_calls_task_plan_callbacks(self):
        responses = self.make_interface().plan()
        self.assertEqual(len(responses), 3)
        self.assertEqual(self.constraint_helper.task_plan_calls, 1)
        self.assertEqual(self.scene_graph_helper.task_plan_calls, 1)

    def test_request_passed_to_helpers(self):
        constraint_helper = Mock(spec=TMPConstraintHelper)
        constraint_helper.plan_linearly_callback.side_effect = \
            lambda request, task_op, robot, joints: request.set_goal_configuration(task_op)
        scene_graph_helper = Mock(spec=TMPSceneGraphHelper)

        interface = FixedTaskPlan(self.goals[:1], self.robot, GROUP, self.planner, self.scene, self.request,
                                  constraint_helper, scene_graph_helper)
        interface.plan()

        args = constraint_helper.plan_linearly_callback.call_args[0]
        self.assertIs(args[0], self.request)
        self.assertEqual(args[1], self.goals[0])
        self.assertIs(args[2], self.robot)
        scene_graph_helper.plan_linearly_callback.assert_called_once_with(self.request, self.goals[0])


class TestPartialGroups(unittest.TestCase):
    """Task plans for groups covering only some of the robot's variables."""

    def plan_group(self, robot, group, start, goals, **kwargs):
        planner = GoalFollowingPlanner(robot)
        request = MotionRequestBuilder(planner, group)
        request.set_start_configuration(start)
        interface = FixedTaskPlan(goals, robot, group, planner, Scene(robot), request,
                                  GoalConstraintHelper(), RecordingSceneGraphHelper(), **kwargs)
        return interface.plan(), planner, request

    def test_subset_of_joints_without_virtual_joint(self):
        robot = Robot(name="arm_robot", joints=['j1', 'j2', 'j3'], groups={'arm': ['j1', 'j2']})
        goals = [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]]
        responses, planner, request = self.plan_group(robot, 'arm', [0.0, 0.0], goals, start_prefix=[])

        self.assertEqual(len(responses), len(goals))
        self.assertTrue(all(r.success for r in responses))
        self.assertEqual(planner.starts, [[0.0, 0.0, 0.0], [0.1, 0.2, 0.0], [0.3, 0.4, 0.0]])
        self.assertEqual(request.get_start_configuration(), [0.5, 0.6])

    def test_prefix_ignored_for_group_without_virtual_joint(self):
        responses, planner, request = self.plan_group(make_robot(), 'legs', [0.0, 0.0, 0.0],
                                                      [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]])
        self.assertEqual(len(responses), 2)
        self.assertEqual(planner.starts[1], [0.1, 0.2, 0.3])
        self.assertEqual(request.get_start_configuration(), [0.4, 0.5, 0.6])

    def test_partial_group_with_failed_plan(self):
        robot = Robot(name="arm_robot", joints=['j1', 'j2', 'j3'], groups={'arm': ['j2', 'j3']})
        planner = GoalFollowingPlanner(robot, fail_on={1})
        request = MotionRequestBuilder(planner, 'arm')
        request.set_start_configuration([0.5, 0.5])
        interface = FixedTaskPlan([[0.1, 0.1], [0.2, 0.2]], robot, 'arm', planner, Scene(robot), request,
                                  GoalConstraintHelper(), RecordingSceneGraphHelper(), start_prefix=[])

        responses = interface.plan()
        self.assertEqual([r.success for r in responses], [False, True])
        # Continues from the robot's own joint values
        self.assertEqual(planner.starts[1], [0.0, 0.0, 0.0])

    def test_empty_prefix_keeps_virtual_joint_from_trajectory(self):
        robot = make_robot()
        start = [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0]
        target = [1.0, 2.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.1, 0.2, 0.3]
        _, _, request = self.plan_group(robot, GROUP, start, [target], start_prefix=[])
        self.assertEqual(request.get_start_configuration(), target)

    def test_prefix_length_must_match_virtual_joint(self):
        robot = make_robot()
        planner = GoalFollowingPlanner(robot)
        with self.assertRaises(ValueError):
            FixedTaskPlan([], robot, GROUP, planner, Scene(robot), MotionRequestBuilder(planner, GROUP),
                          GoalConstraintHelper(), RecordingSceneGraphHelper(), start_prefix=[0.0, 1.0])


class StraightLinePlugin:
    """Planning plugin producing a straight line to a joint goal."""

    def __init__(self, robot, handler):
        self.robot = robot

    def plan(self, scene, request):
        return GoalFollowingPlanner(self.robot).plan(scene, request)


register_planning_plugin("test/StraightLine", StraightLinePlugin)


class TestTMPackWithPipeline(unittest.TestCase):
    """Plan a task through an OMPL pipeline planner with a stand-in plugin."""

    def test_pipeline_chain(self):
        robot = make_robot()
        planner = OMPLPipelinePlanner(robot, "default")
        self.assertTrue(planner.initialize(CONFIG_FILE, plugin="test/StraightLine"))

        request = MotionRequestBuilder(planner, GROUP)
        request.set_start_configuration(goal(0.0, 0.0, 0.0))
        goals = [goal(0.5, 0.5, 0.5), goal(1.0, -1.0, 0.0)]

        interface = FixedTaskPlan(goals, robot, GROUP, planner, Scene(robot), request,
                                  GoalConstraintHelper(), RecordingSceneGraphHelper())
        responses = interface.plan()

        self.assertEqual(len(responses), 2)
        self.assertTrue(all(r.success for r in responses))
        # Time parameterization ran on the way out of the pipeline
        self.assertGreater(responses[1].trajectory.duration, 0.0)
        self.assertEqual(request.get_request().start_state.joint_state.position, [1.0, -1.0, 0.0])


if __name__ == '__main__':
    unittest.main()

#!/usr/bin/env python3
"""
Motion Planner Module

Planner front-ends that hand requests to an external planning backend:
- Planner: abstract base taking a scene and a request, returning a response
- PlanningPipeline: a planning plugin wrapped in a chain of request adapters
- PipelinePlanner / OMPLPipelinePlanner: planners built on a pipeline
- OMPLInterfacePlanner: direct use of an OMPL planning interface, no adapters

Planning plugins are loaded by name from a registry or from a
``module:attribute`` string, mirroring pluginlib loading on the ROS side.

Author: Robot Control Team
"""

import importlib
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .io import Handler, load_file_to_yaml, resolve_path
from .messages import ErrorCode, MotionPlanRequest, MotionPlanResponse, Vector3, WorkspaceParameters

logger = logging.getLogger(__name__)

PLANNER_CONFIGS = "planner_configs"
DEFAULT_PLUGIN = "ompl_interface/OMPLPlanner"

DEFAULT_ADAPTERS = [
    "default_planner_request_adapters/AddTimeParameterization",
    "default_planner_request_adapters/FixWorkspaceBounds",
    "default_planner_request_adapters/FixStartStateBounds",
    "default_planner_request_adapters/FixStartStateCollision",
]

PlanFunction = Callable[[Any, MotionPlanRequest], MotionPlanResponse]


class PlanningPluginError(Exception):
    """Custom exception for planning plugin and pipeline loading errors."""
    pass


# Planning plugins
PLANNING_PLUGINS: Dict[str, Any] = {
    DEFAULT_PLUGIN: "robowflex.src.ompl_plugin:OMPLPlanningPlugin",
}


def register_planning_plugin(name: str, factory: Any):
    """
    Register a planning plugin.

    Args:
        name: Plugin name used in the ``planning_plugin`` parameter
        factory: Callable taking (robot, handler) and returning an object with
            ``plan(scene, request) -> MotionPlanResponse``, or a
            ``module:attribute`` string naming one
    """
    PLANNING_PLUGINS[name] = factory


def _import_attribute(path: str) -> Any:
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise PlanningPluginError(f"Plugin path must be 'module:attribute', got '{path}'")

    try:
        module = importlib.import_module(module_name)
        return getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise PlanningPluginError(f"Failed to load plugin '{path}': {e}") from e


def load_planning_plugin(name: str, robot, handler: Handler):
    """
    Instantiate a planning plugin.

    Args:
        name: Registered plugin name or ``module:attribute`` path
        robot: Robot the plugin plans for
        handler: Parameters the plugin is configured from

    Raises:
        PlanningPluginError: If the plugin cannot be found or constructed
    """
    factory = PLANNING_PLUGINS.get(name, name)
    if isinstance(factory, str):
        if ":" not in factory:
            raise PlanningPluginError(f"Unknown planning plugin: {name}")
        factory = _import_attribute(factory)

    plugin = factory(robot, handler)
    if not callable(getattr(plugin, "plan", None)):
        raise PlanningPluginError(f"Planning plugin '{name}' has no plan() method")

    logger.info(f"Loaded planning plugin: {name}")
    return plugin


# Request adapters
class RequestAdapter:
    """Base class for adapters that fix up a request before and/or a response after planning."""

    def __init__(self, robot, handler: Handler):
        self.robot = robot
        self.handler = handler

    def adapt_and_plan(self, planner: PlanFunction, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        return planner(scene, request)

    def get_description(self) -> str:
        return type(self).__name__


class AddTimeParameterization(RequestAdapter):
    """Time-stamp trajectory waypoints so no joint exceeds its scaled velocity limit."""

    def adapt_and_plan(self, planner, scene, request):
        response = planner(scene, request)
        if not response.success or response.trajectory is None:
            return response

        scaling = float(np.clip(request.max_velocity_scaling_factor, 1e-6, 1.0))
        trajectory = response.trajectory
        limits = np.array([self.robot.get_velocity_limit(n) * scaling for n in trajectory.joint_names])

        elapsed = 0.0
        previous = None
        for point in trajectory.points:
            current = np.asarray(point.positions, dtype=float)
            if previous is not None:
                elapsed += float(np.max(np.abs(current - previous) / limits, initial=0.0))
            point.time_from_start = elapsed
            previous = current

        return response


class FixWorkspaceBounds(RequestAdapter):
    """Replace an empty workspace with a cube of ``default_workspace_bounds`` half-width."""

    def adapt_and_plan(self, planner, scene, request):
        wp = request.workspace_parameters
        lo, hi = wp.min_corner.to_array(), wp.max_corner.to_array()
        if np.all(lo < hi):
            return planner(scene, request)

        bound = float(self.handler.get_param("default_workspace_bounds", 10.0))
        logger.debug(f"Workspace is empty, using default bounds of {bound}")
        request = request.copy()
        request.workspace_parameters = WorkspaceParameters(
            frame_id=wp.frame_id,
            min_corner=Vector3(-bound, -bound, -bound),
            max_corner=Vector3(bound, bound, bound),
        )
        return planner(scene, request)


class FixStartStateBounds(RequestAdapter):
    """Pull a start state that is slightly outside joint limits back inside them."""

    def adapt_and_plan(self, planner, scene, request):
        state = self.robot.msg_to_state(request.start_state)
        if self.robot.satisfies_bounds(state):
            return planner(scene, request)

        max_error = float(self.handler.get_param("start_state_max_bounds_error", 0.05))
        if not self.robot.satisfies_bounds(state, margin=max_error):
            logger.error(f"Start state is outside joint limits by more than {max_error}; not fixing")
            return planner(scene, request)

        logger.info("Start state slightly outside joint limits, clamping")
        request = request.copy()
        request.start_state = self.robot.state_to_msg(self.robot.enforce_bounds(state))
        return planner(scene, request)


class FixStartStateCollision(RequestAdapter):
    """Perturb an invalid start state within a fraction of each joint range until the scene accepts it."""

    def __init__(self, robot, handler):
        super().__init__(robot, handler)
        self.rng = np.random.default_rng(handler.get_param("start_state_seed"))

    def adapt_and_plan(self, planner, scene, request):
        state = self.robot.msg_to_state(request.start_state)
        if scene is None or scene.is_state_valid(state):
            return planner(scene, request)

        jiggle = float(self.handler.get_param("jiggle_fraction", 0.02))
        attempts = int(self.handler.get_param("max_sampling_attempts", 100))
        names = self.robot.get_joint_names()
        spans = []
        for name in names:
            lower, upper = self.robot.get_joint_limits(name)
            spans.append(upper - lower if np.isfinite(upper - lower) else 2 * np.pi)
        spans = np.array(spans)

        base = np.array([state[n] for n in names])
        for _ in range(attempts):
            candidate = dict(state)
            candidate.update(zip(names, base + self.rng.uniform(-1.0, 1.0, len(names)) * jiggle * spans))
            candidate = self.robot.enforce_bounds(candidate)
            if scene.is_state_valid(candidate):
                logger.info("Found a valid start state near the requested one")
                request = request.copy()
                request.start_state = self.robot.state_to_msg(candidate)
                return planner(scene, request)

        logger.error(f"Start state is invalid and no valid state found in {attempts} attempts")
        return MotionPlanResponse(error_code=ErrorCode.START_STATE_IN_COLLISION, group_name=request.group_name)


REQUEST_ADAPTERS: Dict[str, type] = {
    "default_planner_request_adapters/AddTimeParameterization": AddTimeParameterization,
    "default_planner_request_adapters/FixWorkspaceBounds": FixWorkspaceBounds,
    "default_planner_request_adapters/FixStartStateBounds": FixStartStateBounds,
    "default_planner_request_adapters/FixStartStateCollision": FixStartStateCollision,
}


class PlanningPipeline:
    """A planning plugin run inside a chain of request adapters."""

    def __init__(self, robot, handler: Handler, plugin_param: str = "planning_plugin",
                 adapters_param: str = "request_adapters"):
        """
        Build a pipeline from parameters.

        Args:
            robot: Robot to plan for
            handler: Parameter handler holding the plugin and adapter names
            plugin_param: Parameter naming the planning plugin
            adapters_param: Parameter holding space separated adapter names

        Raises:
            PlanningPluginError: If the plugin or an adapter cannot be loaded
        """
        self.robot = robot
        self.handler = handler

        plugin_name = handler.get_param(plugin_param)
        if not plugin_name:
            raise PlanningPluginError(f"Parameter '{plugin_param}' is not set")
        self.plugin_name = plugin_name
        self.plugin = load_planning_plugin(plugin_name, robot, handler)

        self.adapters: List[RequestAdapter] = []
        for name in str(handler.get_param(adapters_param, "")).split():
            if name not in REQUEST_ADAPTERS:
                raise PlanningPluginError(f"Unknown request adapter: {name}")
            self.adapters.append(REQUEST_ADAPTERS[name](robot, handler))

        logger.info(f"Planning pipeline ready: plugin={plugin_name}, adapters={len(self.adapters)}")

    def _plan_from(self, index: int, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        if index == len(self.adapters):
            return self.plugin.plan(scene, request)

        def next_stage(s, r):
            return self._plan_from(index + 1, s, r)

        return self.adapters[index].adapt_and_plan(next_stage, scene, request)

    def generate_plan(self, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        if not self.robot.has_group(request.group_name):
            logger.error(f"Invalid group name: {request.group_name}")
            return MotionPlanResponse(error_code=ErrorCode.INVALID_GROUP_NAME, group_name=request.group_name)

        start = time.time()
        response = self._plan_from(0, scene, request)
        if not response.planning_time:
            response.planning_time = time.time() - start

        if response.success:
            logger.info(f"Planning succeeded in {response.planning_time:.3f}s")
        else:
            logger.warning(f"Planning failed with {response.error_code.name}")
        return response


class Planner(ABC):
    """Base class for motion planners."""

    def __init__(self, robot, name: str = ""):
        self.robot = robot
        self.name = name
        namespace = f"{robot.get_handler().get_namespace()}/{name}" if name else robot.get_handler().get_namespace()
        self.handler = Handler(namespace)

    def get_robot(self):
        return self.robot

    def get_handler(self) -> Handler:
        return self.handler

    @abstractmethod
    def plan(self, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        """Plan a motion for a request in a scene."""

    @abstractmethod
    def get_planner_configs(self) -> List[str]:
        """Names of the planner configurations available to requests."""


class PipelinePlanner(Planner):
    """Planner that delegates to a planning pipeline."""

    def __init__(self, robot, name: str = ""):
        super().__init__(robot, name)
        self.pipeline: Optional[PlanningPipeline] = None

    def plan(self, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        response = MotionPlanResponse(group_name=request.group_name)
        if self.pipeline is not None:
            response = self.pipeline.generate_plan(scene, request)
        else:
            logger.error("Planner has no pipeline, was it initialized?")

        return response

    def get_planner_configs(self) -> List[str]:
        return []


@dataclass
class OMPLSettings:
    """OMPL planning parameters, written under ``ompl/``."""
    max_goal_samples: int = 10
    max_goal_sampling_attempts: int = 1000
    max_planning_threads: int = 4
    max_solution_segment_length: float = 0.0
    max_state_sampling_attempts: int = 4
    minimum_waypoint_count: int = 10
    simplify_solutions: bool = True
    use_constraints_approximations: bool = False
    display_random_valid_states: bool = False
    link_for_exploration_tree: str = ""
    maximum_waypoint_distance: float = 0.0

    def set_param(self, handler: Handler):
        prefix = "ompl/"
        for f in fields(self):
            handler.set_param(prefix + f.name, getattr(self, f.name))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OMPLSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown OMPL settings: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml_file(cls, path: str) -> "OMPLSettings":
        """Settings from the ``ompl`` mapping of a YAML file, defaults if the file or mapping is missing."""
        ok, node = load_file_to_yaml(path)
        if not ok:
            logger.warning(f"OMPL settings not found in {path}, using defaults")
            return cls()
        if not isinstance(node, dict) or not isinstance(node.get("ompl"), dict):
            return cls()
        return cls.from_dict(node["ompl"])


def get_default_ompl_config_path() -> str:
    """Path of the bundled OMPL planner configuration."""
    possible_paths = [
        os.path.join(os.path.dirname(__file__), "..", "config", "ompl_planning.yaml"),
        resolve_path("package://robowflex/config/ompl_planning.yaml"),
    ]

    for path in possible_paths:
        if path and os.path.exists(path):
            return os.path.abspath(path)

    # First path even if missing, loading will report it
    return os.path.abspath(possible_paths[0])


def load_ompl_config(handler: Handler, config_file: str, configs: List[str]) -> bool:
    """
    Load an OMPL planner configuration file into a handler.

    Args:
        handler: Handler to load parameters into
        config_file: YAML file with a ``planner_configs`` mapping
        configs: List the planner configuration names are appended to

    Returns:
        True on success
    """
    if not config_file:
        return False

    ok, node = load_file_to_yaml(config_file)
    if not ok or not isinstance(node, dict):
        logger.error("Failed to load planner configs.")
        return False

    handler.load_yaml_to_params(node)
    configs.extend(str(name) for name in (node.get(PLANNER_CONFIGS) or {}))
    return True


class OMPLPipelinePlanner(PipelinePlanner):
    """Pipeline planner configured for OMPL."""

    def __init__(self, robot, name: str = ""):
        super().__init__(robot, name)
        self.configs: List[str] = []

    def initialize(self, config_file: str = "", settings: Optional[OMPLSettings] = None,
                   plugin: str = DEFAULT_PLUGIN, adapters: Sequence[str] = DEFAULT_ADAPTERS) -> bool:
        """
        Initialize the planner.

        Args:
            config_file: OMPL planner configuration YAML
            settings: OMPL settings, defaults if None
            plugin: Planning plugin name
            adapters: Request adapter names, applied outermost first

        Returns:
            True if the pipeline was created
        """
        if not load_ompl_config(self.handler, config_file, self.configs):
            return False

        self.handler.set_param("planning_plugin", plugin)
        self.handler.set_param("request_adapters", " ".join(adapters))
        (settings or OMPLSettings()).set_param(self.handler)

        try:
            self.pipeline = PlanningPipeline(self.robot, self.handler, "planning_plugin", "request_adapters")
        except PlanningPluginError as e:
            logger.error(f"Failed to create planning pipeline: {e}")
            self.pipeline = None
            return False

        return True

    def get_planner_configs(self) -> List[str]:
        return list(self.configs)


class OMPLInterfacePlanner(Planner):
    """Planner using an OMPL planning interface directly, without request adapters."""

    def __init__(self, robot, name: str = "", interface=None):
        """
        Args:
            robot: Robot to plan for
            name: Planner name, used as parameter namespace
            interface: Object with ``get_planning_context(scene, request)``;
                loaded from the default plugin on initialize() if None
        """
        super().__init__(robot, name)
        self.interface = interface
        self.configs: List[str] = []

    def initialize(self, config_file: str = "", settings: Optional[OMPLSettings] = None) -> bool:
        if not load_ompl_config(self.handler, config_file, self.configs):
            return False

        (settings or OMPLSettings()).set_param(self.handler)

        if self.interface is None:
            try:
                self.interface = load_planning_plugin(DEFAULT_PLUGIN, self.robot, self.handler)
            except PlanningPluginError as e:
                logger.error(f"Failed to load OMPL interface: {e}")
                return False

        return True

    def plan(self, scene, request: MotionPlanRequest) -> MotionPlanResponse:
        response = MotionPlanResponse(error_code=ErrorCode.FAILURE, group_name=request.group_name)
        if self.interface is None:
            logger.error("OMPL interface not loaded, was the planner initialized?")
            return response

        context = self.interface.get_planning_context(scene, request)
        if not context:
            return response

        context.clear()
        return context.solve()

    def get_planner_configs(self) -> List[str]:
        return list(self.configs)

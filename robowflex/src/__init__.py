"""
Robowflex source module.

Imports are ordered so that message and IO types load before the modules that
depend on them. The OMPL plugin is not imported here; it is loaded by name
when a planner asks for it.
"""

from .messages import (ErrorCode, MotionPlanRequest, MotionPlanResponse, RobotTrajectory,
                       JointTrajectoryPoint, WorkspaceParameters, Vector3, get_final_joint_positions)
from .io import Handler, RobowflexIOError, resolve_path, load_file_to_yaml
from .hdf5 import HDF5Data, HDF5File, HDF5DataType, HDF5Error, UnsupportedDataTypeError
from .geometry import Geometry, GeometryError, ShapeType
from .robot import Robot, RobotModelError
from .scene import Scene, SceneError

from .planner import (Planner, PipelinePlanner, PlanningPipeline, OMPLPipelinePlanner,
                      OMPLInterfacePlanner, OMPLSettings, PlanningPluginError,
                      register_planning_plugin, load_planning_plugin, get_default_ompl_config_path)
from .builder import MotionRequestBuilder

__all__ = [
    'ErrorCode',
    'MotionPlanRequest',
    'MotionPlanResponse',
    'RobotTrajectory',
    'JointTrajectoryPoint',
    'WorkspaceParameters',
    'Vector3',
    'get_final_joint_positions',
    'Handler',
    'RobowflexIOError',
    'resolve_path',
    'load_file_to_yaml',
    'HDF5Data',
    'HDF5File',
    'HDF5DataType',
    'HDF5Error',
    'UnsupportedDataTypeError',
    'Geometry',
    'GeometryError',
    'ShapeType',
    'Robot',
    'RobotModelError',
    'Scene',
    'SceneError',
    'Planner',
    'PipelinePlanner',
    'PlanningPipeline',
    'OMPLPipelinePlanner',
    'OMPLInterfacePlanner',
    'OMPLSettings',
    'PlanningPluginError',
    'register_planning_plugin',
    'load_planning_plugin',
    'get_default_ompl_config_path',
    'MotionRequestBuilder',
]

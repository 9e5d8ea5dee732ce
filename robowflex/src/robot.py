#!/usr/bin/env python3
"""
Robot Model Module

Joint-space description of a robot for planning requests:
- Ordered single-DOF joints with defaults, position and velocity limits
- Named joint groups
- Optional floating virtual joint (7 variables: translation + quaternion)
- Current state, kept separate from the default state

Kinematics and collision geometry are not modeled here.

Author: Robot Control Team
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .io import Handler, load_file_to_yaml
from .messages import JointState, MultiDOFJointState, RobotStateMsg

logger = logging.getLogger(__name__)

VIRTUAL_JOINT_VARIABLES = ("trans_x", "trans_y", "trans_z", "rot_x", "rot_y", "rot_z", "rot_w")
DEFAULT_VIRTUAL_POSE = (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0)


class RobotModelError(Exception):
    """Custom exception for robot model errors."""
    pass


@dataclass
class JointInfo:
    """Single-DOF joint description."""
    name: str
    default: float = 0.0
    lower: float = -math.pi
    upper: float = math.pi
    max_velocity: float = 1.0
    continuous: bool = False

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> "JointInfo":
        if isinstance(data, str):
            return cls(name=data)
        if 'name' not in data:
            raise RobotModelError(f"Joint entry without a name: {data}")
        return cls(
            name=str(data['name']),
            default=float(data.get('default', 0.0)),
            lower=float(data.get('lower', -math.pi)),
            upper=float(data.get('upper', math.pi)),
            max_velocity=float(data.get('max_velocity', 1.0)),
            continuous=bool(data.get('continuous', False)),
        )


class Robot:
    """A named joint-space robot model."""

    def __init__(self, name: str, joints: Sequence[Union[str, JointInfo, Dict[str, Any]]],
                 groups: Optional[Dict[str, Sequence[str]]] = None,
                 virtual_joint: Optional[str] = None,
                 virtual_default: Sequence[float] = DEFAULT_VIRTUAL_POSE):
        """
        Initialize robot model.

        Args:
            name: Robot name, also the parameter namespace
            joints: Ordered joints as names, JointInfo or dictionaries
            groups: Group name to member list; members are joint names or the
                virtual joint name. Defaults to a single group "all".
            virtual_joint: Name of the floating virtual joint, if any
            virtual_default: Default virtual joint pose [x, y, z, qx, qy, qz, qw]
        """
        self.name = name
        self.handler = Handler(name)

        self.joints: Dict[str, JointInfo] = {}
        for joint in joints:
            info = joint if isinstance(joint, JointInfo) else JointInfo.from_dict(joint)
            if info.name in self.joints:
                raise RobotModelError(f"Duplicate joint: {info.name}")
            if info.lower > info.upper:
                raise RobotModelError(f"Joint {info.name} has lower limit above upper limit")
            self.joints[info.name] = info

        self.virtual_joint = virtual_joint
        self.virtual_default = self._check_virtual_pose(virtual_default)
        if virtual_joint in self.joints:
            raise RobotModelError(f"Virtual joint name collides with joint: {virtual_joint}")

        if groups is None:
            members = ([virtual_joint] if virtual_joint else []) + list(self.joints)
            groups = {"all": members}

        self.groups: Dict[str, List[str]] = {}
        for group, members in groups.items():
            for member in members:
                if member not in self.joints and member != self.virtual_joint:
                    raise RobotModelError(f"Group '{group}' references unknown joint '{member}'")
            self.groups[group] = list(members)

        self._positions = {name: info.default for name, info in self.joints.items()}
        self._virtual_pose = list(self.virtual_default)

        logger.info(f"Robot '{name}' initialized with {len(self.joints)} joints, "
                    f"{len(self.groups)} groups, virtual joint: {virtual_joint or 'none'}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Robot":
        if not isinstance(data, dict) or 'name' not in data or 'joints' not in data:
            raise RobotModelError("Robot description requires 'name' and 'joints'")

        virtual = data.get('virtual_joint')
        virtual_default = DEFAULT_VIRTUAL_POSE
        if isinstance(virtual, dict):
            virtual_default = virtual.get('default', DEFAULT_VIRTUAL_POSE)
            virtual = virtual.get('name')

        return cls(
            name=str(data['name']),
            joints=data['joints'],
            groups=data.get('groups'),
            virtual_joint=virtual,
            virtual_default=virtual_default,
        )

    @classmethod
    def from_yaml_file(cls, path: str) -> "Robot":
        """Load a robot description from YAML (see config/example_robot.yaml)."""
        ok, node = load_file_to_yaml(path)
        if not ok:
            raise RobotModelError(f"Failed to load robot description: {path}")
        return cls.from_dict(node)

    @staticmethod
    def _check_virtual_pose(pose: Sequence[float]) -> List[float]:
        pose = [float(v) for v in pose]
        if len(pose) != len(VIRTUAL_JOINT_VARIABLES):
            raise RobotModelError(f"Virtual joint pose needs {len(VIRTUAL_JOINT_VARIABLES)} values, got {len(pose)}")
        return pose

    def get_name(self) -> str:
        return self.name

    def get_handler(self) -> Handler:
        return self.handler

    def get_joint_names(self) -> List[str]:
        return list(self.joints)

    def get_virtual_variable_names(self) -> List[str]:
        if not self.virtual_joint:
            return []
        return [f"{self.virtual_joint}/{v}" for v in VIRTUAL_JOINT_VARIABLES]

    def get_variable_names(self) -> List[str]:
        return self.get_virtual_variable_names() + self.get_joint_names()

    def get_group_names(self) -> List[str]:
        return list(self.groups)

    def has_group(self, group: str) -> bool:
        return group in self.groups

    def get_group_variable_names(self, group: str) -> List[str]:
        """
        Get the ordered variables of a joint group.

        The virtual joint expands to its 7 variables.

        Raises:
            RobotModelError: If the group does not exist
        """
        if group not in self.groups:
            raise RobotModelError(f"Unknown joint group: {group}")

        variables = []
        for member in self.groups[group]:
            if member == self.virtual_joint:
                variables.extend(self.get_virtual_variable_names())
            else:
                variables.append(member)
        return variables

    def get_default_state(self) -> Dict[str, float]:
        state = dict(zip(self.get_virtual_variable_names(), self.virtual_default))
        state.update({name: info.default for name, info in self.joints.items()})
        return state

    def get_state(self) -> List[float]:
        """Current single-DOF joint positions in joint order. The virtual joint is not included."""
        return [self._positions[name] for name in self.joints]

    def get_full_state(self) -> Dict[str, float]:
        state = dict(zip(self.get_virtual_variable_names(), self._virtual_pose))
        state.update(self._positions)
        return state

    def set_state(self, values: Union[Mapping[str, float], Sequence[float]]):
        """
        Set the current state.

        Args:
            values: Mapping of variable name to value (unknown names are
                ignored), or a sequence with one value per joint
        """
        if isinstance(values, Mapping):
            virtual_names = self.get_virtual_variable_names()
            for name, value in values.items():
                if name in self._positions:
                    self._positions[name] = float(value)
                elif name in virtual_names:
                    self._virtual_pose[virtual_names.index(name)] = float(value)
                else:
                    logger.debug(f"Ignoring unknown variable '{name}' for robot '{self.name}'")
            return

        values = list(values)
        if len(values) != len(self.joints):
            raise RobotModelError(f"Expected {len(self.joints)} joint values, got {len(values)}")
        for name, value in zip(self.joints, values):
            self._positions[name] = float(value)

    def get_virtual_pose(self) -> List[float]:
        return list(self._virtual_pose)

    def set_virtual_pose(self, pose: Sequence[float]):
        if not self.virtual_joint:
            raise RobotModelError(f"Robot '{self.name}' has no virtual joint")
        self._virtual_pose = self._check_virtual_pose(pose)

    def get_joint_limits(self, name: str) -> Tuple[float, float]:
        if name in self.joints:
            info = self.joints[name]
            if info.continuous:
                return -math.inf, math.inf
            return info.lower, info.upper
        if name in self.get_virtual_variable_names():
            if name.split("/")[-1].startswith("rot"):
                return -1.0, 1.0
            return -math.inf, math.inf
        raise RobotModelError(f"Unknown variable: {name}")

    def get_velocity_limit(self, name: str) -> float:
        if name in self.joints:
            return self.joints[name].max_velocity
        return math.inf

    def enforce_bounds(self, values: Mapping[str, float]) -> Dict[str, float]:
        """Clamp values into their limits; continuous joints are wrapped into [-pi, pi)."""
        bounded = {}
        for name, value in values.items():
            info = self.joints.get(name)
            if info is not None and info.continuous:
                bounded[name] = float((value + math.pi) % (2 * math.pi) - math.pi)
                continue
            lower, upper = self.get_joint_limits(name)
            bounded[name] = float(np.clip(value, lower, upper))
        return bounded

    def satisfies_bounds(self, values: Mapping[str, float], margin: float = 0.0) -> bool:
        for name, value in values.items():
            lower, upper = self.get_joint_limits(name)
            if value < lower - margin or value > upper + margin:
                return False
        return True

    def state_to_msg(self, values: Optional[Mapping[str, float]] = None) -> RobotStateMsg:
        """
        Convert a state to a message.

        Args:
            values: Variable values; missing variables take their defaults.
                Uses the current state when None.
        """
        state = self.get_default_state() if values is not None else self.get_full_state()
        if values is not None:
            state.update(values)

        msg = RobotStateMsg(joint_state=JointState(
            name=self.get_joint_names(),
            position=[float(state[name]) for name in self.joints],
        ))
        if self.virtual_joint:
            msg.multi_dof_joint_state = MultiDOFJointState(
                joint_names=[self.virtual_joint],
                transforms=[[float(state[name]) for name in self.get_virtual_variable_names()]],
            )
        return msg

    def msg_to_state(self, msg: RobotStateMsg) -> Dict[str, float]:
        """Convert a message to a variable mapping, filling unspecified variables with defaults."""
        state = self.get_default_state()
        for name, value in zip(msg.joint_state.name, msg.joint_state.position):
            if name in self.joints:
                state[name] = float(value)

        multi = msg.multi_dof_joint_state
        for joint, transform in zip(multi.joint_names, multi.transforms):
            if joint == self.virtual_joint:
                state.update(zip(self.get_virtual_variable_names(), (float(v) for v in transform)))
        return state

    def __repr__(self) -> str:
        return f"Robot(name='{self.name}', joints={len(self.joints)}, groups={list(self.groups)})"

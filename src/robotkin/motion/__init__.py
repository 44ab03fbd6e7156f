"""
Motion module - Robot kinematics and path generation.

This module provides:
- Joint position types with configuration data
- External axes (linear tracks, turntables) and their posing
- Forward kinematics by chaining joint rotations
- Closed-form inverse kinematics with eight branches per target
- Path generation for joint, linear and circular movements
"""

from robotkin.motion.actions import (
    ActionGroup,
    CirclePathMode,
    CirPathMode,
    JointConfigurationControl,
    JointTarget,
    LinearConfigurationControl,
    Movement,
    MovementType,
    OverrideRobotTool,
    RobotTarget,
    SpeedData,
    WaitTime,
    WorkObject,
    program_actions,
)
from robotkin.motion.external_axes import (
    ExternalAxis,
    ExternalAxisType,
    create_linear_track,
    create_turntable,
)
from robotkin.motion.inverse import CONFIGURATIONS, InverseKinematics, InverseKinematicsResult
from robotkin.motion.kinematics import ForwardKinematics, ForwardKinematicsResult, check_axis_limits
from robotkin.motion.opw import OPWKinematics, Solution
from robotkin.motion.planner import PathGenerator, PathResult, PathState
from robotkin.motion.positions import (
    UNDEFINED,
    ConfigurationData,
    ExternalJointPosition,
    RobotJointPosition,
)

__all__ = [
    # Positions
    "UNDEFINED",
    "ConfigurationData",
    "ExternalJointPosition",
    "RobotJointPosition",
    # External axes
    "ExternalAxis",
    "ExternalAxisType",
    "create_linear_track",
    "create_turntable",
    # Actions
    "ActionGroup",
    "CirclePathMode",
    "CirPathMode",
    "JointConfigurationControl",
    "JointTarget",
    "LinearConfigurationControl",
    "Movement",
    "MovementType",
    "OverrideRobotTool",
    "RobotTarget",
    "SpeedData",
    "WaitTime",
    "WorkObject",
    "program_actions",
    # Kinematics
    "ForwardKinematics",
    "ForwardKinematicsResult",
    "check_axis_limits",
    "OPWKinematics",
    "Solution",
    "CONFIGURATIONS",
    "InverseKinematics",
    "InverseKinematicsResult",
    # Path generation
    "PathGenerator",
    "PathResult",
    "PathState",
]

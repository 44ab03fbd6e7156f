"""
Core module - Robot model, configuration, geometry helpers and logging.
"""

from robotkin.core.config import ConfigManager, ProgramConfig, RobotConfig
from robotkin.core.exceptions import (
    RobotKinError,
    ConfigurationError,
    RobotError,
    ExternalAxisError,
    KinematicsError,
    PathGenerationError,
)
from robotkin.core.geometry import (
    FrameConverter,
    TransformationUtilities,
    normalize_angle,
    slerp_frames,
)
from robotkin.core.presets import create_robot, get_preset, list_presets
from robotkin.core.robot import AxisLimits, Robot, RobotKinematicParameters, RobotTool

__all__ = [
    # Config
    "ConfigManager",
    "ProgramConfig",
    "RobotConfig",
    # Exceptions
    "RobotKinError",
    "ConfigurationError",
    "RobotError",
    "ExternalAxisError",
    "KinematicsError",
    "PathGenerationError",
    # Geometry
    "FrameConverter",
    "TransformationUtilities",
    "normalize_angle",
    "slerp_frames",
    # Presets
    "create_robot",
    "get_preset",
    "list_presets",
    # Robot
    "AxisLimits",
    "Robot",
    "RobotKinematicParameters",
    "RobotTool",
]

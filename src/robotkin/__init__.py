"""
robotkin - Kinematics and path approximation for 6-axis robot arms

Forward and closed-form inverse kinematics for ABB-style arms with a
spherical wrist, coupled linear and rotational external axes, and a path
generator that interpolates motion programs into joint and Cartesian
trajectories.
"""

__version__ = "0.1.0"
__author__ = "robotkin Contributors"

from robotkin.core.config import ConfigManager
from robotkin.core.presets import create_robot
from robotkin.core.robot import Robot
from robotkin.motion.planner import PathGenerator

__all__ = [
    "__version__",
    "ConfigManager",
    "Robot",
    "create_robot",
    "PathGenerator",
]

"""
ABB robot presets.

Kinematic parameters and joint limits of a few common ABB arms, taken from
the manufacturer's product specifications.
"""

from dataclasses import dataclass
from typing import Sequence

from compas.geometry import Frame

from robotkin.core.exceptions import ConfigurationError
from robotkin.core.robot import AxisLimits, Robot, RobotKinematicParameters, RobotTool


@dataclass(frozen=True)
class RobotPreset:
    """
    Named robot definition.

    Attributes:
        name: Preset identifier
        description: Human readable robot name
        kinematic_parameters: OPW parameters in mm
        axis_limits: Joint limits in degrees
    """

    name: str
    description: str
    kinematic_parameters: RobotKinematicParameters
    axis_limits: tuple[AxisLimits, ...]


def _limits(*pairs: tuple[float, float]) -> tuple[AxisLimits, ...]:
    return tuple(AxisLimits(lower, upper) for lower, upper in pairs)


PRESETS: dict[str, RobotPreset] = {
    preset.name: preset
    for preset in (
        RobotPreset(
            name="irb1300_11_090",
            description="ABB IRB 1300-11/0.9",
            kinematic_parameters=RobotKinematicParameters(
                a1=50, a2=-40, a3=0, b=0, c1=544, c2=425, c3=425, c4=90
            ),
            axis_limits=_limits(
                (-180, 180), (-100, 130), (-210, 65), (-230, 230), (-130, 130), (-400, 400)
            ),
        ),
        RobotPreset(
            name="irb1600_10_145",
            description="ABB IRB 1600-10/1.45",
            kinematic_parameters=RobotKinematicParameters(
                a1=150, a2=0, a3=0, b=0, c1=486.5, c2=700, c3=600, c4=65
            ),
            axis_limits=_limits(
                (-180, 180), (-63, 110), (-235, 55), (-200, 200), (-115, 115), (-400, 400)
            ),
        ),
        RobotPreset(
            name="irb6700_245_300",
            description="ABB IRB 6700-245/3.00",
            kinematic_parameters=RobotKinematicParameters(
                a1=320, a2=-200, a3=0, b=0, c1=780, c2=1145, c3=1462.5, c4=250
            ),
            axis_limits=_limits(
                (-170, 170), (-65, 85), (-180, 70), (-300, 300), (-130, 130), (-360, 360)
            ),
        ),
        RobotPreset(
            name="irb7600_150_350",
            description="ABB IRB 7600-150/3.50",
            kinematic_parameters=RobotKinematicParameters(
                a1=410, a2=-165, a3=0, b=0, c1=780, c2=1075, c3=2012, c4=250
            ),
            axis_limits=_limits(
                (-180, 180), (-60, 85), (-180, 60), (-300, 300), (-100, 100), (-360, 360)
            ),
        ),
    )
}


def list_presets() -> list[str]:
    """List available preset names."""
    return sorted(PRESETS)


def get_preset(name: str) -> RobotPreset:
    """
    Get a preset by name (case-insensitive, ``-`` and ``/`` accepted as ``_``).

    Raises:
        ConfigurationError: If the preset does not exist
    """
    key = name.lower().replace("-", "_").replace("/", "_").replace(".", "")
    if key not in PRESETS:
        raise ConfigurationError(
            f"Robot preset not found: {name}",
            details={"available": list_presets()},
        )
    return PRESETS[key]


def create_robot(
    name: str,
    base_frame: Frame | None = None,
    tool: RobotTool | None = None,
    external_axes: Sequence | None = None,
) -> Robot:
    """
    Create a robot model from a preset.

    Args:
        name: Preset name, e.g. ``"irb6700_245_300"``
        base_frame: Robot base frame (default world XY)
        tool: Mounted tool (default flange tool)
        external_axes: External axes attached to the robot

    Returns:
        Robot instance
    """
    preset = get_preset(name)
    return Robot(
        name=preset.name,
        kinematic_parameters=preset.kinematic_parameters,
        axis_limits=preset.axis_limits,
        base_frame=base_frame,
        tool=tool,
        external_axes=external_axes,
    )
